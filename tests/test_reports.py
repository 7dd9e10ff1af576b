import unittest
from datetime import date, timedelta

from tailorbook.extensions import db
from tailorbook.models import Order, Payment, User
from tailorbook.reports.routes import build_dashboard

from tests.base import ApiTestCase


class DashboardTest(ApiTestCase):
    def setUp(self):
        super().setUp()
        today = date.today()
        self.overdue = self.create_order(advance=100, deliveryDate=(today - timedelta(days=1)).isoformat())
        self.due_today = self.create_order(deliveryDate=today.isoformat())
        self.undated = self.create_order()

    def test_money_and_health(self):
        body = self.api("GET", "/api/reports/dashboard").get_json()
        self.assertEqual(body["revenue"], 4500)
        self.assertEqual(body["collected"], 100)
        self.assertEqual(body["pending"], 4400)
        self.assertEqual(body["todays_collection"], 100)
        self.assertEqual(body["due_today"], 1)
        self.assertEqual(body["order_health"]["overdue"], 1)
        self.assertEqual(body["order_health"]["near_due"], 1)
        # no delivery date counts as on time
        self.assertEqual(body["order_health"]["on_time"], 1)
        self.assertEqual(body["order_health"]["on_time_percent"], 33)
        self.assertEqual(body["month"]["orders"], 3)
        self.assertEqual(len(body["recent_orders"]), 3)

    def test_payment_attention(self):
        attention = self.api("GET", "/api/reports/dashboard").get_json()["payment_attention"]
        self.assertEqual(len(attention), 1)
        row = attention[0]
        self.assertEqual(row["orderId"], self.overdue["id"])
        self.assertEqual(row["amountDue"], 1400)
        self.assertEqual(row["daysOverdue"], 1)
        self.assertTrue(row["reminderLink"].startswith("whatsapp://send?phone=919123456780&text="))

    def test_cancelled_orders_leave_health(self):
        self.api("POST", f"/api/orders/{self.overdue['id']}/status", json={"status": "Cancelled"})
        body = build_dashboard(self.user_id)
        self.assertEqual(body["order_health"]["overdue"], 0)
        self.assertEqual(body["payment_attention"], [])


class DeliveriesTest(ApiTestCase):
    def setUp(self):
        super().setUp()
        today = date.today()
        self.late = self.create_order(deliveryDate=(today - timedelta(days=3)).isoformat())
        self.create_order(deliveryDate=today.isoformat())
        self.create_order(deliveryDate=(today + timedelta(days=1)).isoformat())
        self.create_order()

    def _count(self, which):
        return self.api("GET", f"/api/reports/deliveries?filter={which}").get_json()["count"]

    def test_filters(self):
        self.assertEqual(self._count("today"), 1)
        self.assertEqual(self._count("tomorrow"), 1)
        self.assertEqual(self._count("overdue"), 1)

    def test_completed_orders_skipped(self):
        self.api("POST", f"/api/orders/{self.late['id']}/status", json={"status": "Completed"})
        self.assertEqual(self._count("overdue"), 0)

    def test_unknown_filter(self):
        resp = self.api("GET", "/api/reports/deliveries?filter=someday")
        self.assertEqual(resp.status_code, 400)


class CliTest(ApiTestCase):
    def test_backfill_advance_payments(self):
        legacy = Order(owner_id=self.user_id, bill_no="2024/00001", date=date(2024, 5, 1),
                       items=[{"type": "Blouse", "totalCost": 900}], advance=300)
        db.session.add(legacy)
        self.create_order(advance=200)
        db.session.commit()
        legacy_id = legacy.id

        runner = self.app.test_cli_runner()
        result = runner.invoke(args=["backfill-advance-payments", "--dry-run"])
        self.assertIn("2024/00001", result.output)
        self.assertEqual(Payment.query.filter_by(order_id=legacy_id).count(), 0)

        result = runner.invoke(args=["backfill-advance-payments"])
        self.assertEqual(result.exit_code, 0, result.output)
        payments = Payment.query.filter_by(order_id=legacy_id).all()
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0].type, "Advance")
        self.assertEqual(payments[0].amount, 300)
        self.assertEqual(Payment.query.count(), 2)

    def test_seed_user_and_otp_latest(self):
        runner = self.app.test_cli_runner()
        result = runner.invoke(args=["seed-user", "--email", "new@example.com", "--phone", "9111111111",
                                     "--pin", "2222"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIsNotNone(User.query.filter_by(phone="9111111111").first())

        duplicate = runner.invoke(args=["seed-user", "--email", "x@example.com", "--phone", "9111111111",
                                        "--pin", "2222"])
        self.assertNotEqual(duplicate.exit_code, 0)

        result = runner.invoke(args=["otp-latest", "9111111111"])
        self.assertIn("No OTP records found.", result.output)


if __name__ == "__main__":
    unittest.main()
