import unittest
from datetime import date

from tailorbook import create_app
from tailorbook.config import TestConfig
from tailorbook.extensions import db


class AppTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()


class ApiTestCase(AppTestCase):
    email = "owner@example.com"
    phone = "9876543210"
    pin = "1234"

    def setUp(self):
        super().setUp()
        resp = self.client.post(
            "/api/auth/signup",
            json={"email": self.email, "pin": self.pin, "name": "Lakshmi", "phone": self.phone},
        )
        self.assertEqual(resp.status_code, 201, resp.get_data(as_text=True))
        body = resp.get_json()
        self.token = body["token"]
        self.user_id = body["user"]["id"]

    def headers(self, token=None):
        return {"Authorization": f"Bearer {token or self.token}"}

    def api(self, method, url, **kwargs):
        kwargs.setdefault("headers", self.headers())
        return self.client.open(url, method=method, **kwargs)

    def create_order(self, items=None, advance=0, **extra):
        payload = {
            "customerName": "Priya",
            "customerMobile": "9123456780",
            "items": items or [{"type": "Blouse", "totalCost": 1500}],
            "advance": advance,
        }
        payload.update(extra)
        resp = self.api("POST", "/api/orders", json=payload)
        self.assertEqual(resp.status_code, 201, resp.get_data(as_text=True))
        return resp.get_json()["order"]

    @staticmethod
    def today_iso():
        return date.today().isoformat()
