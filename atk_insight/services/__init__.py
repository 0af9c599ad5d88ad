from atk_insight.services.engine_service import RecomputeSummary, recompute
from atk_insight.services.forecast_service import restock_forecasts
from atk_insight.services.health_service import inventory_health_summary
from atk_insight.services.notification_service import notify_urgent_reorders
from atk_insight.services.store_service import latest_analytics, latest_recommendations

__all__ = [
    "RecomputeSummary",
    "inventory_health_summary",
    "latest_analytics",
    "latest_recommendations",
    "notify_urgent_reorders",
    "recompute",
    "restock_forecasts",
]
