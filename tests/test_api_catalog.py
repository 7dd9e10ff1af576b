import unittest
from datetime import date
from unittest import mock

import requests

from tailorbook.catalog.service import DEFAULT_OUTFITS
from tailorbook.errors import ServiceError
from tailorbook.extensions import db
from tailorbook.models import Order, Payment
from tailorbook.utils.billing import customer_prefix, next_bill_number
from tailorbook.utils.whatsapp import send_whatsapp_template

from tests.base import AppTestCase, ApiTestCase


class CompanyTest(ApiTestCase):
    def test_profile_required_before_first_save(self):
        self.assertEqual(self.api("GET", "/api/company").status_code, 404)

    def test_create_then_merge(self):
        resp = self.api("PUT", "/api/company", json={"name": "Lakshmi Boutique", "phone": "9876500000"})
        self.assertEqual(resp.status_code, 201)
        resp = self.api("PUT", "/api/company", json={"gstin": "29ABCDE1234F1Z5"})
        self.assertEqual(resp.status_code, 200)
        company = resp.get_json()["company"]
        self.assertEqual(company["name"], "Lakshmi Boutique")
        self.assertEqual(company["gstin"], "29ABCDE1234F1Z5")
        me = self.api("GET", "/api/auth/me").get_json()["user"]
        self.assertTrue(me["onboarded"])

    def test_name_required(self):
        resp = self.api("PUT", "/api/company", json={"address": "MG Road"})
        self.assertEqual(resp.status_code, 400)


class CustomerTest(ApiTestCase):
    def test_display_ids_use_company_prefix(self):
        self.api("PUT", "/api/company", json={"name": "lakshmi boutique"})
        first = self.api("POST", "/api/customers", json={"name": "Anu", "mobile": "9000011111"})
        second = self.api("POST", "/api/customers", json={"name": "Bina", "mobile": "9000022222"})
        self.assertEqual(first.get_json()["customer"]["displayId"], "LA-00001")
        self.assertEqual(second.get_json()["customer"]["displayId"], "LA-00002")

    def test_list_is_alphabetical_and_searchable(self):
        for name, mobile in (("zara", "9000000003"), ("Anu", "9000000001"), ("meena", "9000000002")):
            self.api("POST", "/api/customers", json={"name": name, "mobile": mobile})
        names = [c["name"] for c in self.api("GET", "/api/customers").get_json()["customers"]]
        self.assertEqual(names, ["Anu", "meena", "zara"])
        found = self.api("GET", "/api/customers?q=000002").get_json()
        self.assertEqual([c["name"] for c in found["customers"]], ["meena"])

    def test_invalid_mobile(self):
        resp = self.api("POST", "/api/customers", json={"name": "Anu", "mobile": "90000"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "Please enter a valid 10-digit mobile number.")

    def test_detail_update_and_delete(self):
        order = self.create_order(advance=100)
        customer_id = order["customerId"]
        detail = self.api("GET", f"/api/customers/{customer_id}").get_json()
        self.assertEqual(len(detail["orders"]), 1)

        resp = self.api("PATCH", f"/api/customers/{customer_id}", json={"location": "Kochi"})
        self.assertEqual(resp.get_json()["customer"]["location"], "Kochi")

        self.assertEqual(self.api("DELETE", f"/api/customers/{customer_id}").status_code, 200)
        stored = db.session.get(Order, order["id"])
        self.assertIsNone(stored.customer_id)
        self.assertEqual(stored.customer_name, "Priya")
        self.assertIsNone(Payment.query.first().customer_id)


class CatalogTest(ApiTestCase):
    def test_defaults_seeded_on_first_read(self):
        outfits = self.api("GET", "/api/outfits").get_json()["outfits"]
        self.assertEqual([o["name"] for o in outfits], [o["name"] for o in DEFAULT_OUTFITS])
        blouse = outfits[0]
        self.assertEqual(blouse["categories"][0]["name"], "Front Neck")
        # a second read does not seed again
        self.assertEqual(len(self.api("GET", "/api/outfits").get_json()["outfits"]), len(DEFAULT_OUTFITS))

    def test_new_outfit_goes_to_top(self):
        self.api("GET", "/api/outfits")
        resp = self.api("POST", "/api/outfits", json={"name": "Saree Blouse", "basePrice": 650})
        self.assertEqual(resp.status_code, 201)
        outfits = self.api("GET", "/api/outfits").get_json()["outfits"]
        self.assertEqual(outfits[0]["name"], "Saree Blouse")

    def test_update_reorder_delete(self):
        outfits = self.api("GET", "/api/outfits").get_json()["outfits"]
        first, second = outfits[0]["id"], outfits[1]["id"]

        resp = self.api("PATCH", f"/api/outfits/{first}", json={"basePrice": 550, "isVisible": False})
        self.assertEqual(resp.get_json()["outfit"]["basePrice"], 550)
        self.assertFalse(resp.get_json()["outfit"]["isVisible"])

        resp = self.api("PUT", "/api/outfits/order", json={"ids": [second, first]})
        self.assertEqual([o["id"] for o in resp.get_json()["outfits"]], [second, first])

        self.assertEqual(self.api("DELETE", f"/api/outfits/{first}").status_code, 200)
        self.assertEqual(self.api("PATCH", f"/api/outfits/{first}", json={}).status_code, 404)

    def test_negative_price_rejected(self):
        resp = self.api("POST", "/api/outfits", json={"name": "Gown", "basePrice": -1})
        self.assertEqual(resp.status_code, 400)


class BillNumberTest(AppTestCase):
    def _order(self, bill_no, owner_id="u1"):
        db.session.add(Order(owner_id=owner_id, bill_no=bill_no, date=date(2025, 1, 1), items=[]))

    def test_next_number_follows_highest_of_year(self):
        self._order("2025/00007")
        self._order("2025/00003")
        self._order("2024/00099")
        self._order("2025/00050", owner_id="u2")
        db.session.commit()
        self.assertEqual(next_bill_number("u1", date(2025, 6, 1)), "2025/00008")
        self.assertEqual(next_bill_number("u1", date(2026, 1, 1)), "2026/00001")

    def test_customer_prefix(self):
        self.assertEqual(customer_prefix("lakshmi"), "LA")
        self.assertEqual(customer_prefix("  "), "CU")
        self.assertEqual(customer_prefix(None), "CU")


class WhatsAppTest(AppTestCase):
    def setUp(self):
        super().setUp()
        self.app.config.update(WHATSAPP_TOKEN="token", WHATSAPP_PHONE_NUMBER_ID="12345")

    @mock.patch("tailorbook.utils.whatsapp.requests.post")
    def test_template_payload(self, post):
        post.return_value = mock.Mock(status_code=200)
        send_whatsapp_template("9876543210", "otp_template", ["482913"])
        url = post.call_args[0][0]
        payload = post.call_args[1]["json"]
        self.assertIn("/12345/messages", url)
        self.assertEqual(payload["to"], "919876543210")
        self.assertEqual(payload["template"]["language"]["code"], "en")
        body = payload["template"]["components"][0]
        self.assertEqual(body["parameters"], [{"type": "text", "text": "482913"}])
        self.assertEqual(post.call_args[1]["headers"]["Authorization"], "Bearer token")

    @mock.patch("tailorbook.utils.whatsapp.requests.post")
    def test_provider_error_message_surfaces(self, post):
        response = mock.Mock(status_code=400, text="bad")
        response.json.return_value = {"error": {"message": "Template not approved"}}
        post.return_value = response
        with self.assertRaises(ServiceError) as ctx:
            send_whatsapp_template("9876543210", "otp_template", ["1"])
        self.assertEqual(ctx.exception.message, "Template not approved")
        self.assertEqual(ctx.exception.status_code, 502)

    @mock.patch("tailorbook.utils.whatsapp.requests.post")
    def test_network_failure(self, post):
        post.side_effect = requests.ConnectionError("down")
        with self.assertRaises(ServiceError):
            send_whatsapp_template("9876543210", "otp_template", ["1"])

    def test_unconfigured(self):
        self.app.config.update(WHATSAPP_TOKEN=None)
        with self.assertRaises(ServiceError) as ctx:
            send_whatsapp_template("9876543210", "otp_template", ["1"])
        self.assertEqual(ctx.exception.status_code, 503)


if __name__ == "__main__":
    unittest.main()
