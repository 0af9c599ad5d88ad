from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from atk_insight.database.base import Base
from atk_insight.database.engine import build_engine
from atk_insight.models import import_all_models
from atk_insight.models.stock_item import StockItem
from atk_insight.models.stock_movement import StockMovement

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_session_factory(database_url="sqlite:///:memory:"):
    import_all_models()
    engine = build_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False), engine


def add_item(db, name, *, stock=0, min_stock=5, price=1000.0, lead_time_days=None, is_active=True, unit="pcs"):
    item = StockItem(
        name=name,
        unit=unit,
        stock_quantity=stock,
        min_stock=min_stock,
        price=price,
        lead_time_days=lead_time_days,
        is_active=is_active,
    )
    db.add(item)
    db.flush()
    return item


def add_movement(db, item, *, days_ago, quantity, type="out", now=NOW):
    movement = StockMovement(
        item_id=item.id,
        type=type,
        quantity=quantity,
        created_at=now - timedelta(days=days_ago),
    )
    db.add(movement)
    return movement
