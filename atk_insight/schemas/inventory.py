from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ItemMaster(BaseModel):
    id: int
    name: str
    stock_quantity: int
    min_stock: int
    unit: Optional[str] = None
    price: float
    type: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ItemAnalyticsRead(BaseModel):
    item_id: int
    days_since_last_out: int
    total_out_30d: int
    total_out_90d: int
    avg_daily_usage: float
    turnover_rate: float
    health_status: str
    last_out_date: Optional[datetime]
    calculated_at: datetime
    item: ItemMaster


class ReorderRecommendationRead(BaseModel):
    item_id: int
    current_stock: int
    avg_daily_usage: float
    reorder_point: int
    suggested_qty: int
    days_until_reorder: int
    priority: str
    estimated_stockout_date: Optional[date]
    calculated_at: datetime
    item: ItemMaster


class HealthCounts(BaseModel):
    healthy: int = 0
    slow: int = 0
    dead: int = 0
    unknown: int = 0
    total: int = 0


class PriorityCounts(BaseModel):
    urgent: int = 0
    soon: int = 0
    planned: int = 0
    safe: int = 0
    total: int = 0


class RecomputeResponse(BaseModel):
    status: str
    calculated_at: datetime
    health: HealthCounts
    reorder: PriorityCounts
    failed: int
    failed_items: List[int]


class RestockForecastRead(BaseModel):
    item_id: int
    item_name: str
    current_stock: int
    min_stock: int
    avg_daily_usage: float
    usage_lower: float
    usage_upper: float
    trend: str
    trend_percentage: float
    month_end_multiplier: float
    has_month_end_spike: bool
    peak_day: Optional[str]
    confidence: float
    days_until_min_stock: Optional[int]
    predicted_min_date: Optional[date]
    recommendation: str
