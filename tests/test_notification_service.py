import unittest
from datetime import date, timedelta
from unittest import mock

from sqlalchemy import select

from atk_insight.models.reorder_alert import ReorderAlert
from atk_insight.services.engine_service import recompute
from atk_insight.services.notification_service import (
    ALERT_TYPE_LOW_STOCK,
    alert_already_sent,
    build_low_stock_message,
    notify_urgent_reorders,
)
from factories import NOW, add_item, add_movement, make_session_factory

SEND_PATH = "atk_insight.services.notification_service.send_whatsapp"


class LowStockMessageTest(unittest.TestCase):
    def test_message_lists_items(self):
        recommendations = [
            {
                "current_stock": 3,
                "reorder_point": 12,
                "suggested_qty": 30,
                "estimated_stockout_date": date(2026, 3, 18),
                "item": {"name": "Kertas A4", "min_stock": 5, "unit": "rim"},
            },
            {
                "current_stock": 0,
                "reorder_point": 0,
                "suggested_qty": 5,
                "estimated_stockout_date": None,
                "item": {"name": "Toner", "min_stock": 5, "unit": None},
            },
        ]
        message = build_low_stock_message(recommendations, date(2026, 3, 15))
        self.assertIn("ALERT: Low Stock ATK* (2026-03-15)", message)
        self.assertIn("• *Kertas A4*", message)
        self.assertIn("Stock: 3 rim (min: 5, reorder point: 12)", message)
        self.assertIn("Est. stockout: 2026-03-18", message)
        self.assertIn("Stock: 0 (min: 5, reorder point: 0)", message)
        self.assertIn("Est. stockout: -", message)

    def test_long_lists_are_truncated(self):
        recommendations = [
            {
                "current_stock": 1,
                "reorder_point": 2,
                "suggested_qty": 5,
                "estimated_stockout_date": None,
                "item": {"name": "Item {}".format(index), "min_stock": 5, "unit": "pcs"},
            }
            for index in range(25)
        ]
        message = build_low_stock_message(recommendations, date(2026, 3, 15))
        self.assertIn("*Item 19*", message)
        self.assertNotIn("*Item 20*", message)
        self.assertIn("...and 5 more item(s)", message)


class NotifyUrgentReordersTest(unittest.TestCase):
    def setUp(self):
        self.session_factory, self.engine = make_session_factory()
        db = self.session_factory()
        paper = add_item(db, "Kertas A4", stock=3, min_stock=5)
        add_item(db, "Pulpen", stock=40, min_stock=5)
        for days_ago in range(1, 30, 3):
            add_movement(db, paper, days_ago=days_ago, quantity=9)
        db.commit()
        db.close()
        recompute(session_factory=self.session_factory, now=NOW, workers=1)

    def tearDown(self):
        self.engine.dispose()

    def _notify(self, **kwargs):
        kwargs.setdefault("recipients", ["6281111", "6282222"])
        return notify_urgent_reorders(session_factory=self.session_factory, now=NOW, **kwargs)

    def _alerts(self):
        db = self.session_factory()
        try:
            return db.execute(select(ReorderAlert).order_by(ReorderAlert.phone_number)).scalars().all()
        finally:
            db.close()

    def test_sends_one_digest_per_recipient(self):
        with mock.patch(SEND_PATH) as send:
            stats = self._notify()
        self.assertEqual(stats, {"items": 1, "alerts": 2, "delivered": 2, "skipped": 0})
        self.assertEqual(send.call_count, 2)
        self.assertIn("Kertas A4", send.call_args[0][0])
        self.assertNotIn("Pulpen", send.call_args[0][0])

        alerts = self._alerts()
        self.assertEqual([alert.phone_number for alert in alerts], ["6281111", "6282222"])
        self.assertTrue(all(alert.delivered for alert in alerts))
        self.assertEqual(alerts[0].alert_type, ALERT_TYPE_LOW_STOCK)
        self.assertEqual(alerts[0].item_count, 1)

    def test_second_run_same_day_is_deduplicated(self):
        with mock.patch(SEND_PATH):
            self._notify()
        with mock.patch(SEND_PATH) as send:
            stats = self._notify()
        self.assertEqual(stats["skipped"], 2)
        self.assertEqual(stats["alerts"], 0)
        send.assert_not_called()

        db = self.session_factory()
        try:
            self.assertTrue(alert_already_sent(db, NOW.date(), ALERT_TYPE_LOW_STOCK, "6281111"))
            self.assertFalse(
                alert_already_sent(db, NOW.date() + timedelta(days=1), ALERT_TYPE_LOW_STOCK, "6281111")
            )
        finally:
            db.close()

    def test_delivery_failure_is_recorded(self):
        with mock.patch(SEND_PATH, side_effect=RuntimeError("WhatsApp API error: HTTP 500")):
            stats = self._notify(recipients=["6281111"])
        self.assertEqual(stats["delivered"], 0)
        self.assertEqual(stats["alerts"], 1)
        alert = self._alerts()[0]
        self.assertFalse(alert.delivered)
        self.assertIn("HTTP 500", alert.failure_reason)

    def test_dry_run_records_without_sending(self):
        with mock.patch(SEND_PATH) as send:
            stats = self._notify(send_notifications=False)
        send.assert_not_called()
        self.assertEqual(stats["alerts"], 2)
        self.assertEqual(stats["delivered"], 0)

    def test_no_recipients(self):
        with mock.patch(SEND_PATH) as send:
            stats = self._notify(recipients=[])
        send.assert_not_called()
        self.assertEqual(stats, {"items": 1, "alerts": 0, "delivered": 0, "skipped": 0})


if __name__ == "__main__":
    unittest.main()
