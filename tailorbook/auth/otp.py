from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from ..errors import AuthError, ValidationError
from ..extensions import db
from ..models import Otp, User
from ..utils.whatsapp import send_whatsapp_template

logger = logging.getLogger(__name__)


def generate_otp(length: int = 6) -> str:
    # no leading zero, so the code always has the full length when read as a number
    floor = 10 ** (length - 1)
    return str(floor + secrets.randbelow(9 * floor))


def _deliver(phone: str, code: str) -> None:
    cfg = current_app.config
    transport = (cfg.get("OTP_TRANSPORT") or "whatsapp").lower()
    if transport == "console":
        logger.info("[OTP console] %s -> %s", phone, code)
        return
    send_whatsapp_template(phone, cfg.get("WHATSAPP_OTP_TEMPLATE", "otp_template"), [code])


def send_otp(phone: str, user: Optional[User] = None) -> str:
    """Create and deliver a verification code; returns the opaque token to confirm with."""
    if not phone:
        raise ValidationError("Phone number is invalid or missing.")

    cfg = current_app.config
    code = generate_otp(cfg.get("OTP_LENGTH", 6))
    now = datetime.utcnow()
    entry = Otp(
        token=secrets.token_urlsafe(24),
        phone=phone,
        otp=code,
        user_id=user.id if user else None,
        created_at=now,
        expires_at=now + timedelta(minutes=cfg.get("OTP_EXP_MINUTES", 10)),
    )
    # Deliver first so a failed send leaves no usable code behind.
    _deliver(phone, code)
    db.session.add(entry)
    db.session.commit()
    return entry.token


def confirm_otp(token: str, code: str, user: Optional[User] = None) -> bool:
    now = datetime.utcnow()
    record = Otp.query.filter_by(token=token).first() if token else None
    if not record or record.consumed_at or not code:
        return False
    if record.expires_at and record.expires_at <= now:
        return False
    if not secrets.compare_digest(record.otp, str(code).strip()):
        return False

    record.verified_at = now
    if user is not None:
        user.is_phone_verified = True
    db.session.commit()
    return True


def consume_verified_otp(token: str, phone: str) -> Otp:
    """Use up a confirmed token; PIN resets are only allowed behind one."""
    record = Otp.query.filter_by(token=token).first() if token else None
    if (not record or not record.verified_at or record.consumed_at
            or record.phone != phone):
        raise AuthError("Please verify your phone number first.")
    record.consumed_at = datetime.utcnow()
    return record


def latest_otp(phone: str) -> Optional[Otp]:
    return (Otp.query
            .filter_by(phone=phone)
            .order_by(Otp.id.desc())
            .first())
