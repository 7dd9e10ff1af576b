import unittest

from tailorbook.auth.otp import latest_otp
from tailorbook.extensions import db
from tailorbook.models import Otp, User

from tests.base import ApiTestCase


class LoginTest(ApiTestCase):
    def test_login_with_phone_and_pin(self):
        resp = self.client.post("/api/auth/login", json={"phone": self.phone, "pin": self.pin})
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body["token"])
        self.assertEqual(body["user"]["email"], self.email)
        self.assertTrue(body["user"]["has_pin"])
        self.assertFalse(body["user"]["onboarded"])

    def test_login_with_email_and_master_password(self):
        resp = self.client.post("/api/auth/login", json={
            "email": self.email, "password": self.app.config["AUTH_MASTER_PASSWORD"]})
        self.assertEqual(resp.status_code, 200)

    def test_wrong_pin(self):
        resp = self.client.post("/api/auth/login", json={"phone": self.phone, "pin": "0000"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "Incorrect PIN")

    def test_unknown_phone(self):
        resp = self.client.post("/api/auth/login", json={"phone": "9000000000", "pin": "1234"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "User not found")

    def test_non_json_body_rejected(self):
        resp = self.client.post("/api/auth/login", data="phone=9876543210")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "Expected JSON payload.")

    def test_duplicate_signup(self):
        resp = self.client.post("/api/auth/signup", json={
            "email": "second@example.com", "pin": "1111", "name": "Second", "phone": self.phone})
        self.assertEqual(resp.status_code, 409)


class SessionTest(ApiTestCase):
    def test_me_requires_token(self):
        resp = self.client.get("/api/auth/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "Invalid or missing token.")

    def test_logout_revokes_token(self):
        self.assertEqual(self.api("GET", "/api/auth/me").status_code, 200)
        self.assertEqual(self.api("POST", "/api/auth/logout").status_code, 200)
        self.assertEqual(self.api("GET", "/api/auth/me").status_code, 401)

    def test_logout_discards_order_draft(self):
        self.api("PUT", "/api/orders/draft", json={"customerName": "Priya"})
        self.api("POST", "/api/auth/logout")
        login = self.client.post("/api/auth/login", json={"phone": self.phone, "pin": self.pin})
        token = login.get_json()["token"]
        draft = self.api("GET", "/api/orders/draft", headers=self.headers(token)).get_json()["wizard"]
        self.assertEqual(draft["customerName"], "")


class PinTest(ApiTestCase):
    def test_change_pin(self):
        resp = self.api("POST", "/api/auth/pin/change", json={"old_pin": "0000", "new_pin": "5678"})
        self.assertEqual(resp.status_code, 401)
        resp = self.api("POST", "/api/auth/pin/change", json={"old_pin": self.pin, "new_pin": "5678"})
        self.assertEqual(resp.status_code, 200)
        login = self.client.post("/api/auth/login", json={"phone": self.phone, "pin": "5678"})
        self.assertEqual(login.status_code, 200)

    def test_reset_pin_after_otp(self):
        sent = self.client.post("/api/auth/otp/send", json={"phone": self.phone})
        self.assertEqual(sent.status_code, 200)
        otp_token = sent.get_json()["token"]
        code = latest_otp(self.phone).otp
        self.assertEqual(len(code), 6)

        bad = self.client.post("/api/auth/otp/confirm", json={"token": otp_token, "code": "000000"})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.get_json()["error"], "Invalid verification code")

        ok = self.client.post("/api/auth/otp/confirm", json={"token": otp_token, "code": code})
        self.assertEqual(ok.get_json(), {"verified": True})

        reset = self.client.post("/api/auth/pin/reset", json={
            "phone": self.phone, "new_pin": "2468", "otp_token": otp_token})
        self.assertEqual(reset.status_code, 200)
        self.assertEqual(db.session.get(User, self.user_id).pin, "2468")
        self.assertIsNotNone(Otp.query.filter_by(token=otp_token).first().consumed_at)

        # a token only resets once
        again = self.client.post("/api/auth/pin/reset", json={
            "phone": self.phone, "new_pin": "1357", "otp_token": otp_token})
        self.assertEqual(again.status_code, 401)

    def test_reset_needs_confirmed_otp(self):
        sent = self.client.post("/api/auth/otp/send", json={"phone": self.phone})
        resp = self.client.post("/api/auth/pin/reset", json={
            "phone": self.phone, "new_pin": "2468", "otp_token": sent.get_json()["token"]})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "Please verify your phone number first.")

    def test_confirm_marks_signed_in_user_verified(self):
        sent = self.api("POST", "/api/auth/otp/send", json={"phone": self.phone})
        otp_token = sent.get_json()["token"]
        self.api("POST", "/api/auth/otp/confirm",
                 json={"token": otp_token, "code": latest_otp(self.phone).otp})
        me = self.api("GET", "/api/auth/me").get_json()["user"]
        self.assertTrue(me["is_phone_verified"])


class PingTest(ApiTestCase):
    def test_ping(self):
        resp = self.client.get("/api/ping")
        self.assertEqual(resp.get_json()["status"], "ok")

    def test_unknown_route_is_json(self):
        resp = self.client.get("/api/nowhere")
        self.assertEqual(resp.status_code, 404)
        self.assertIn("error", resp.get_json())


if __name__ == "__main__":
    unittest.main()
