import importlib

from atk_insight.models.item_analytics import ItemAnalytics
from atk_insight.models.job_log import JobLog
from atk_insight.models.reorder_alert import ReorderAlert
from atk_insight.models.reorder_recommendation import ReorderRecommendation
from atk_insight.models.stock_item import StockItem
from atk_insight.models.stock_movement import StockMovement


def import_all_models() -> None:
    for module_name in (
        "atk_insight.models.item_analytics",
        "atk_insight.models.job_log",
        "atk_insight.models.reorder_alert",
        "atk_insight.models.reorder_recommendation",
        "atk_insight.models.stock_item",
        "atk_insight.models.stock_movement",
    ):
        importlib.import_module(module_name)


__all__ = [
    "ItemAnalytics",
    "JobLog",
    "ReorderAlert",
    "ReorderRecommendation",
    "StockItem",
    "StockMovement",
    "import_all_models",
]
