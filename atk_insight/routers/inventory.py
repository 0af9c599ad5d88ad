from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from atk_insight.core.constants import PRIORITIES
from atk_insight.core.exceptions import CatalogUnavailableError
from atk_insight.core.forecasting import get_forecaster
from atk_insight.dependencies import get_db, get_session_factory, require_auth
from atk_insight.schemas.inventory import (
    ItemAnalyticsRead,
    ReorderRecommendationRead,
    RecomputeResponse,
    RestockForecastRead,
)
from atk_insight.services.engine_service import recompute
from atk_insight.services.forecast_service import restock_forecasts
from atk_insight.services.health_service import inventory_health_summary
from atk_insight.services.notification_service import notify_urgent_reorders
from atk_insight.services.store_service import latest_analytics, latest_recommendations

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.post("/recompute", response_model=RecomputeResponse)
def recompute_now(
    demand: str = Query("flat", description="Demand model: flat (90-day) or recent (30-day)"),
    session_factory=Depends(get_session_factory),
    _auth=Depends(require_auth),
):
    try:
        forecaster = get_forecaster(demand)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        summary = recompute(session_factory=session_factory, forecaster=forecaster)
    except CatalogUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "completed", **summary.as_dict()}


@router.get("/analytics", response_model=List[ItemAnalyticsRead])
def fetch_analytics(
    limit: Optional[int] = Query(None, ge=1, le=2000, description="Max records to return"),
    db: Session = Depends(get_db),
):
    return latest_analytics(db, limit=limit)


@router.get("/recommendations", response_model=List[ReorderRecommendationRead])
def fetch_recommendations(
    priority: Optional[str] = Query(None, description="urgent, soon, planned or safe"),
    limit: Optional[int] = Query(None, ge=1, le=2000, description="Max records to return"),
    db: Session = Depends(get_db),
):
    priority_value = priority.strip().lower() if priority else None
    if priority_value and priority_value not in PRIORITIES:
        raise HTTPException(status_code=400, detail="priority must be one of {}".format(", ".join(PRIORITIES)))
    return latest_recommendations(db, limit=limit, priority=priority_value)


@router.get("/health-summary")
def fetch_health_summary(db: Session = Depends(get_db)):
    return inventory_health_summary(db)


@router.get("/forecast", response_model=List[RestockForecastRead])
def fetch_forecast(db: Session = Depends(get_db)):
    return restock_forecasts(db)


@router.post("/notify")
def notify_now(
    send_notifications: bool = Query(True, description="Send WhatsApp notifications"),
    session_factory=Depends(get_session_factory),
    _auth=Depends(require_auth),
):
    stats = notify_urgent_reorders(
        session_factory=session_factory,
        send_notifications=send_notifications,
    )
    return {"status": "completed", "stats": stats}
