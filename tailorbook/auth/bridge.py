"""Phone + PIN sign-in on top of an email/password identity provider.

Users only ever see a 4-digit PIN, kept on their ``User`` row. Every provider
account shares one master password, so the PIN check happens here and the
provider sign-in just proves the account exists. Accounts created before the
master password existed still carry a PIN-derived provider password; those are
tried in order and rotated to the master password on first success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import AuthError, ConflictError, ServiceError, ValidationError
from ..extensions import db
from ..models import User
from ..utils.validation import validate_email, validate_phone, validate_pin
from .otp import consume_verified_otp
from .provider import IdentityProvider, ProviderError, get_identity_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialAttempt:
    password: str
    migrate: bool = False


def _master_password() -> str:
    return current_app.config["AUTH_MASTER_PASSWORD"]


def _legacy_suffix() -> str:
    return current_app.config.get("LEGACY_PIN_SUFFIX", "")


def phone_login_attempts(pin: str) -> List[CredentialAttempt]:
    return [
        CredentialAttempt(_master_password()),
        CredentialAttempt(pin + _legacy_suffix(), migrate=True),
        CredentialAttempt(pin, migrate=True),
    ]


def email_login_attempts(password: str) -> List[CredentialAttempt]:
    return [
        CredentialAttempt(password),
        CredentialAttempt(password + _legacy_suffix()),
    ]


def authenticate(provider: IdentityProvider, email: str,
                 attempts: Sequence[CredentialAttempt]) -> Optional[str]:
    """Run the attempts in order and return the uid of the first that signs in.

    Only password-type provider errors move on to the next attempt; anything
    else (account disabled, provider unreachable) is raised to the caller.
    """
    for attempt in attempts:
        try:
            uid = provider.sign_in(email, attempt.password)
        except ProviderError as exc:
            if not exc.is_password_error:
                raise
            continue
        if attempt.migrate:
            provider.update_password(uid, _master_password())
            logger.info("Rotated legacy credential for %s", email)
        return uid
    return None


def _require_pin(pin: Optional[str], message: str = "PIN must be exactly 4 digits.") -> str:
    if not validate_pin(pin):
        raise ValidationError(message)
    return pin


def login_with_phone(phone: str, pin: str) -> User:
    phone = (phone or "").strip()
    pin = (pin or "").strip()
    if not validate_phone(phone):
        raise ValidationError("Please enter a valid 10-digit mobile number.")
    _require_pin(pin)

    user = User.query.filter_by(phone=phone).first()
    if user is None:
        raise AuthError("User not found")
    if not user.email:
        raise ServiceError("Internal error: Email not associated with this phone", status_code=500)

    stored_pin = user.pin
    if stored_pin and stored_pin != pin:
        raise AuthError("Incorrect PIN")

    uid = authenticate(get_identity_provider(), user.email, phone_login_attempts(pin))
    if uid is None:
        db.session.rollback()
        raise AuthError("Incorrect credentials")
    if uid != user.id:
        logger.warning("Provider uid %s does not match user %s", uid, user.id)

    # Re-read after authentication; both checks must agree.
    db.session.refresh(user)
    stored_pin = user.pin
    if stored_pin and stored_pin != pin:
        db.session.rollback()
        raise AuthError("Incorrect PIN")
    if not stored_pin:
        user.pin = pin
        logger.info("Backfilled PIN for user %s", user.id)

    db.session.commit()
    return user


def login_with_email(email: str, password: str) -> User:
    email = (email or "").strip().lower()
    if not validate_email(email) or not password:
        raise ValidationError("Email and password are required.")

    uid = authenticate(get_identity_provider(), email, email_login_attempts(password))
    if uid is None:
        raise AuthError("Incorrect credentials")

    user = db.session.get(User, uid) or User.query.filter_by(email=email).first()
    if user is None:
        raise AuthError("User not found")
    return user


def signup(email: str, pin: str, name: str, phone: str) -> User:
    email = (email or "").strip().lower()
    phone = (phone or "").strip()
    name = (name or "").strip()
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address.")
    if not validate_phone(phone):
        raise ValidationError("Please enter a valid 10-digit mobile number.")
    _require_pin(pin)
    if not name:
        raise ValidationError("Name is required.")
    if User.query.filter_by(phone=phone).first():
        raise ConflictError("This phone number is already registered.")

    try:
        uid = get_identity_provider().sign_up(email, _master_password())
    except ProviderError as exc:
        if exc.code == ProviderError.EMAIL_IN_USE:
            raise ConflictError(exc.message)
        raise

    user = User(id=uid, name=name, email=email, phone=phone, pin=pin, is_phone_verified=False)
    db.session.add(user)
    db.session.commit()
    return user


def change_pin(user: User, old_pin: str, new_pin: str) -> None:
    _require_pin(new_pin, "New PIN must be exactly 4 digits.")
    # Accounts without a stored PIN may set one without the old value.
    if user.pin and user.pin != old_pin:
        raise AuthError("Incorrect old PIN")
    user.pin = new_pin
    db.session.commit()


def reset_pin_with_phone(phone: str, new_pin: str, otp_token: str) -> User:
    phone = (phone or "").strip()
    _require_pin(new_pin, "New PIN must be exactly 4 digits.")
    user = User.query.filter_by(phone=phone).first()
    if user is None:
        raise AuthError("User not found")

    consume_verified_otp(otp_token, phone)
    user.pin = new_pin
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("PIN reset failed for %s", user.id)
        raise ServiceError("Could not update PIN. Please try again.", status_code=500) from exc
    return user


def reset_password(email: str) -> None:
    email = (email or "").strip().lower()
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address.")
    get_identity_provider().send_password_reset(email)
