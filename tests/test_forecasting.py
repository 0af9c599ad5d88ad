import unittest
from datetime import datetime, timedelta, timezone

from atk_insight.core.forecasting import (
    DemandForecaster,
    FlatDemand,
    RecentDemand,
    build_restock_forecast,
    detect_trend,
    get_forecaster,
    is_month_end,
    month_end_multiplier,
    peak_weekday,
    weekly_totals,
)
from atk_insight.core.usage import Outflow, summarize_usage
from factories import NOW


def _out(days_ago, quantity):
    return Outflow(quantity=quantity, created_at=NOW - timedelta(days=days_ago))


def _at(year, month, day, quantity):
    return Outflow(quantity=quantity, created_at=datetime(year, month, day, 9, 0, tzinfo=timezone.utc))


class ForecasterSelectionTest(unittest.TestCase):
    def test_lookup_by_name(self):
        self.assertIsInstance(get_forecaster(None), FlatDemand)
        self.assertIsInstance(get_forecaster("flat"), FlatDemand)
        self.assertIsInstance(get_forecaster(" Recent "), RecentDemand)
        with self.assertRaises(ValueError):
            get_forecaster("neural")

    def test_forecaster_must_define_a_rate(self):
        with self.assertRaises(TypeError):
            DemandForecaster()

        class Unfinished(DemandForecaster):
            name = "unfinished"

        with self.assertRaises(TypeError):
            Unfinished()

    def test_rates(self):
        outflows = [_out(60, 60), _out(10, 30)]
        usage = summarize_usage(outflows, NOW)
        self.assertAlmostEqual(FlatDemand().daily_rate(usage, outflows), 1.0)
        self.assertAlmostEqual(RecentDemand().daily_rate(usage, outflows), 1.0)

        outflows = [_out(10, 60)]
        usage = summarize_usage(outflows, NOW)
        self.assertAlmostEqual(FlatDemand().daily_rate(usage, outflows), 60 / 90)
        self.assertAlmostEqual(RecentDemand().daily_rate(usage, outflows), 2.0)


class TrendTest(unittest.TestCase):
    def test_direction(self):
        self.assertEqual(detect_trend([10, 10, 20, 20]).direction, "increasing")
        self.assertAlmostEqual(detect_trend([10, 10, 20, 20]).percentage, 100.0)
        self.assertEqual(detect_trend([20, 20, 10, 10]).direction, "decreasing")
        self.assertEqual(detect_trend([10, 11]).direction, "stable")

    def test_short_or_empty_history_is_stable(self):
        self.assertEqual(detect_trend([]).direction, "stable")
        self.assertEqual(detect_trend([5]).direction, "stable")
        self.assertEqual(detect_trend([0, 5]).direction, "stable")

    def test_weekly_totals_are_oldest_first(self):
        outflows = [_out(1, 7), _out(10, 5), _out(20, 3), _out(19, 1)]
        self.assertEqual(weekly_totals(outflows, NOW), [4, 5, 7])


class SeasonalityTest(unittest.TestCase):
    def test_month_end_window(self):
        self.assertTrue(is_month_end(datetime(2026, 3, 25)))
        self.assertTrue(is_month_end(datetime(2026, 3, 31)))
        self.assertFalse(is_month_end(datetime(2026, 3, 24)))
        self.assertTrue(is_month_end(datetime(2026, 2, 22)))

    def test_month_end_multiplier(self):
        self.assertAlmostEqual(month_end_multiplier([_at(2026, 2, 25, 10), _at(2026, 3, 5, 5)]), 2.0)
        self.assertEqual(month_end_multiplier([_at(2026, 2, 25, 10)]), 1.0)

    def test_peak_weekday(self):
        # NOW falls on a Sunday.
        self.assertEqual(peak_weekday([_out(0, 2), _out(1, 9)]), "Sat")
        self.assertEqual(peak_weekday([_out(6, 5), _out(0, 5)]), "Sun")
        self.assertIsNone(peak_weekday([]))


class RestockForecastTest(unittest.TestCase):
    def _steady(self):
        return [_out(days_ago, 3) for days_ago in range(0, 30, 3)]

    def test_recommendation_tiers(self):
        cases = [(20, 15, "safe"), (15, 10, "order_soon"), (10, 5, "restock_now")]
        for stock, days, expected in cases:
            with self.subTest(stock=stock):
                forecast = build_restock_forecast(
                    self._steady(), current_stock=stock, min_stock=5, lead_time_days=7, now=NOW
                )
                self.assertAlmostEqual(forecast.avg_daily_usage, 1.0)
                self.assertEqual(forecast.days_until_min_stock, days)
                self.assertEqual(forecast.predicted_min_date, (NOW + timedelta(days=days)).date())
                self.assertEqual(forecast.recommendation, expected)

    def test_steady_usage_has_a_tight_band(self):
        forecast = build_restock_forecast(self._steady(), current_stock=20, min_stock=5, lead_time_days=7, now=NOW)
        self.assertAlmostEqual(forecast.usage_lower, 1.0)
        self.assertAlmostEqual(forecast.usage_upper, 1.0)
        self.assertAlmostEqual(forecast.confidence, 0.5)
        self.assertEqual(forecast.trend, "stable")

    def test_below_minimum_collapses_to_zero(self):
        forecast = build_restock_forecast(self._steady(), current_stock=3, min_stock=5, lead_time_days=7, now=NOW)
        self.assertEqual(forecast.days_until_min_stock, 0)
        self.assertEqual(forecast.predicted_min_date, NOW.date())
        self.assertEqual(forecast.recommendation, "restock_now")

    def test_no_usage(self):
        forecast = build_restock_forecast([], current_stock=3, min_stock=5, lead_time_days=7, now=NOW)
        self.assertEqual(forecast.avg_daily_usage, 0)
        self.assertIsNone(forecast.days_until_min_stock)
        self.assertIsNone(forecast.predicted_min_date)
        self.assertIsNone(forecast.peak_day)
        self.assertEqual(forecast.recommendation, "safe")
        self.assertEqual(forecast.confidence, 0)
        self.assertFalse(forecast.has_month_end_spike)


if __name__ == "__main__":
    unittest.main()
