import unittest

from sqlalchemy import text

from tailorbook.auth import bridge
from tailorbook.auth.provider import IdentityProvider, ProviderError
from tailorbook.errors import AuthError, ConflictError, ValidationError
from tailorbook.extensions import db
from tailorbook.models import User

from tests.base import AppTestCase

PHONE = "9876543210"
EMAIL = "owner@example.com"


class FakeProvider(IdentityProvider):
    def __init__(self, password=None, error=None):
        self.passwords = {}
        if password is not None:
            self.passwords[EMAIL] = password
        self.error = error
        self.calls = []

    def sign_in(self, email, password):
        self.calls.append(("sign_in", password))
        if self.error is not None:
            raise self.error
        if email not in self.passwords:
            raise ProviderError(ProviderError.INVALID_CREDENTIAL)
        if self.passwords[email] != password:
            raise ProviderError(ProviderError.WRONG_PASSWORD)
        return "u1"

    def sign_up(self, email, password):
        if email in self.passwords:
            raise ProviderError(ProviderError.EMAIL_IN_USE, "This email is already registered.")
        self.passwords[email] = password
        return "u-" + email.split("@")[0]

    def update_password(self, uid, password):
        self.calls.append(("update_password", password))
        self.passwords[EMAIL] = password


class PinChangingProvider(FakeProvider):
    """Changes the stored PIN behind the session's back while signing in."""

    def sign_in(self, email, password):
        uid = super().sign_in(email, password)
        db.session.execute(text("UPDATE users SET pin = '5678' WHERE id = 'u1'"))
        return uid


class BridgeTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        self.master = self.app.config["AUTH_MASTER_PASSWORD"]
        self.suffix = self.app.config["LEGACY_PIN_SUFFIX"]

    def use_provider(self, provider):
        self.app.extensions["identity_provider"] = provider
        return provider

    def add_user(self, pin="1234"):
        user = User(id="u1", name="Lakshmi", email=EMAIL, phone=PHONE, pin=pin)
        db.session.add(user)
        db.session.commit()
        return user


class PhoneLoginTest(BridgeTestCase):
    def test_master_password_signs_in(self):
        provider = self.use_provider(FakeProvider(password=self.master))
        self.add_user()
        user = bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(user.id, "u1")
        self.assertEqual(provider.calls, [("sign_in", self.master)])

    def test_wrong_pin_rejected_before_provider_is_called(self):
        provider = self.use_provider(FakeProvider(password=self.master))
        self.add_user()
        with self.assertRaises(AuthError) as ctx:
            bridge.login_with_phone(PHONE, "9999")
        self.assertEqual(ctx.exception.message, "Incorrect PIN")
        self.assertEqual(provider.calls, [])

    def test_legacy_suffixed_password_rotated_to_master(self):
        provider = self.use_provider(FakeProvider(password="1234" + self.suffix))
        self.add_user()
        bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(provider.passwords[EMAIL], self.master)
        self.assertIn(("update_password", self.master), provider.calls)

    def test_legacy_bare_pin_rotated_to_master(self):
        provider = self.use_provider(FakeProvider(password="1234"))
        self.add_user()
        bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(provider.passwords[EMAIL], self.master)
        self.assertEqual([call[1] for call in provider.calls if call[0] == "sign_in"],
                         [self.master, "1234" + self.suffix, "1234"])

    def test_missing_pin_is_backfilled(self):
        self.use_provider(FakeProvider(password=self.master))
        self.add_user(pin=None)
        bridge.login_with_phone(PHONE, "4321")
        self.assertEqual(db.session.get(User, "u1").pin, "4321")

    def test_no_attempt_succeeds(self):
        self.use_provider(FakeProvider(password="something-else"))
        self.add_user()
        with self.assertRaises(AuthError) as ctx:
            bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(ctx.exception.message, "Incorrect credentials")

    def test_non_password_error_propagates(self):
        self.use_provider(FakeProvider(error=ProviderError("auth/user-disabled", "Account disabled.")))
        self.add_user()
        with self.assertRaises(ProviderError) as ctx:
            bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(ctx.exception.code, "auth/user-disabled")

    def test_pin_changed_during_sign_in_is_rejected(self):
        provider = self.use_provider(PinChangingProvider(password=self.master))
        self.add_user()
        with self.assertRaises(AuthError) as ctx:
            bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(ctx.exception.message, "Incorrect PIN")
        self.assertEqual(provider.calls, [("sign_in", self.master)])

    def test_unknown_phone(self):
        self.use_provider(FakeProvider(password=self.master))
        with self.assertRaises(AuthError) as ctx:
            bridge.login_with_phone(PHONE, "1234")
        self.assertEqual(ctx.exception.message, "User not found")

    def test_pin_format_checked(self):
        with self.assertRaises(ValidationError) as ctx:
            bridge.login_with_phone(PHONE, "12")
        self.assertEqual(ctx.exception.message, "PIN must be exactly 4 digits.")


class EmailLoginTest(BridgeTestCase):
    def test_suffixed_password_accepted(self):
        self.use_provider(FakeProvider(password="secret" + self.suffix))
        self.add_user()
        self.assertEqual(bridge.login_with_email(EMAIL, "secret").id, "u1")


class SignupTest(BridgeTestCase):
    def test_account_uses_master_password(self):
        provider = self.use_provider(FakeProvider())
        user = bridge.signup(EMAIL, "1234", "Lakshmi", PHONE)
        self.assertEqual(provider.passwords[EMAIL], self.master)
        self.assertEqual(user.pin, "1234")
        self.assertFalse(user.is_phone_verified)

    def test_duplicate_phone_rejected(self):
        self.use_provider(FakeProvider())
        self.add_user()
        with self.assertRaises(ConflictError):
            bridge.signup("other@example.com", "1234", "Other", PHONE)

    def test_duplicate_email_rejected(self):
        self.use_provider(FakeProvider(password=self.master))
        with self.assertRaises(ConflictError):
            bridge.signup(EMAIL, "1234", "Lakshmi", PHONE)


class ChangePinTest(BridgeTestCase):
    def test_old_pin_must_match(self):
        user = self.add_user()
        with self.assertRaises(AuthError) as ctx:
            bridge.change_pin(user, "0000", "5678")
        self.assertEqual(ctx.exception.message, "Incorrect old PIN")
        bridge.change_pin(user, "1234", "5678")
        self.assertEqual(db.session.get(User, "u1").pin, "5678")


if __name__ == "__main__":
    unittest.main()
