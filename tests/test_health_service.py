import unittest

from atk_insight.services.engine_service import recompute
from atk_insight.services.health_service import format_idr, inventory_health_summary
from factories import NOW, add_item, add_movement, make_session_factory


class HealthSummaryTest(unittest.TestCase):
    def setUp(self):
        self.session_factory, self.engine = make_session_factory()
        db = self.session_factory()
        pens = add_item(db, "Pulpen", stock=100, min_stock=10, price=2000)
        add_item(db, "Toner", stock=4, min_stock=2, price=200000)
        paper = add_item(db, "Kertas A4", stock=3, min_stock=5, price=50000)
        glue = add_item(db, "Lem", stock=0, min_stock=5, price=1000)
        add_movement(db, pens, days_ago=2, quantity=10)
        add_movement(db, paper, days_ago=1, quantity=2)
        add_movement(db, glue, days_ago=40, quantity=5)
        db.commit()
        db.close()

        recompute(session_factory=self.session_factory, now=NOW, workers=1)

        db = self.session_factory()
        add_item(db, "Lakban", stock=10, min_stock=5, price=1000)
        db.commit()
        db.close()

        self.db = self.session_factory()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_summary_counts_and_values(self):
        summary = inventory_health_summary(self.db, dead_stock_alert_value=500000)["summary"]
        self.assertEqual(summary["healthy"], 2)
        self.assertEqual(summary["slow"], 1)
        self.assertEqual(summary["dead"], 1)
        self.assertEqual(summary["unknown"], 1)
        self.assertEqual(summary["total"], 5)
        self.assertEqual(summary["total_value"], 1160000)
        self.assertEqual(summary["dead_stock_value"], 800000)
        self.assertEqual(summary["low_stock_count"], 2)

    def test_slow_moving_items_stalest_first(self):
        result = inventory_health_summary(self.db, dead_stock_alert_value=500000)
        names = [entry["name"] for entry in result["slow_moving_items"]]
        self.assertEqual(names, ["Toner", "Lem"])
        self.assertEqual(result["slow_moving_items"][0]["days_since_last_out"], 999)

    def test_alerts(self):
        alerts = inventory_health_summary(self.db, dead_stock_alert_value=500000)["alerts"]
        by_item = {(alert["item_name"], alert["type"]): alert["message"] for alert in alerts}
        self.assertIn("Rp800.000", by_item[("Toner", "warning")])
        self.assertEqual(by_item[("Lem", "danger")], "Out of stock!")
        self.assertIn("at or below minimum", by_item[("Kertas A4", "warning")])
        self.assertNotIn(("Pulpen", "warning"), by_item)

    def test_dead_stock_threshold(self):
        alerts = inventory_health_summary(self.db, dead_stock_alert_value=1000000)["alerts"]
        self.assertNotIn("Toner", [alert["item_name"] for alert in alerts])

    def test_format_idr(self):
        self.assertEqual(format_idr(1250000), "Rp1.250.000")


if __name__ == "__main__":
    unittest.main()
