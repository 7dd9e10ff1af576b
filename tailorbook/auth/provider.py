"""Identity provider seam.

The rest of the app only ever talks to ``IdentityProvider``; the bundled
``LocalIdentityProvider`` keeps hashed credentials in ``provider_accounts``.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import ProviderAccount
from ..utils.mail import send_password_reset_email

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    WRONG_PASSWORD = "auth/wrong-password"
    INVALID_CREDENTIAL = "auth/invalid-credential"
    USER_NOT_FOUND = "auth/user-not-found"
    EMAIL_IN_USE = "auth/email-already-in-use"

    PASSWORD_CODES = (WRONG_PASSWORD, INVALID_CREDENTIAL)

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code

    @property
    def is_password_error(self) -> bool:
        return self.code in self.PASSWORD_CODES


class IdentityProvider:
    """Email/password identity backend. Implementations raise ``ProviderError``."""

    def sign_in(self, email: str, password: str) -> str:
        raise NotImplementedError

    def sign_up(self, email: str, password: str) -> str:
        raise NotImplementedError

    def update_password(self, uid: str, password: str) -> None:
        raise NotImplementedError

    def send_password_reset(self, email: str) -> None:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """Database-backed provider. Changes are staged on the session; callers commit."""

    @staticmethod
    def _account(email: str) -> Optional[ProviderAccount]:
        return ProviderAccount.query.filter_by(email=(email or "").strip().lower()).first()

    def sign_in(self, email: str, password: str) -> str:
        account = self._account(email)
        if account is None:
            # same code a hosted provider returns for an unknown email
            raise ProviderError(ProviderError.INVALID_CREDENTIAL, "Invalid email or password.")
        if not account.check_password(password):
            raise ProviderError(ProviderError.WRONG_PASSWORD, "Invalid email or password.")
        return account.uid

    def sign_up(self, email: str, password: str) -> str:
        normalized = (email or "").strip().lower()
        if self._account(normalized):
            raise ProviderError(ProviderError.EMAIL_IN_USE, "This email is already registered.")
        account = ProviderAccount(email=normalized)
        account.set_password(password)
        db.session.add(account)
        db.session.flush()
        return account.uid

    def update_password(self, uid: str, password: str) -> None:
        account = db.session.get(ProviderAccount, uid)
        if account is None:
            raise ProviderError(ProviderError.USER_NOT_FOUND, "Account not found.")
        account.set_password(password)

    def send_password_reset(self, email: str) -> None:
        account = self._account(email)
        if account is None:
            raise ProviderError(ProviderError.USER_NOT_FOUND, "No account exists for this email.")
        link = current_app.config.get("PASSWORD_RESET_URL")
        if not send_password_reset_email(account.email, f"{link}?uid={account.uid}"):
            logger.warning("Password reset mail for %s was not delivered", account.email)


def get_identity_provider() -> IdentityProvider:
    provider = current_app.extensions.get("identity_provider")
    if provider is None:
        provider = LocalIdentityProvider()
        current_app.extensions["identity_provider"] = provider
    return provider
