from atk_insight.database.base import Base
from atk_insight.database.engine import engine, ensure_sqlite_schema
from atk_insight.database.session import SessionLocal

__all__ = ["Base", "engine", "ensure_sqlite_schema", "SessionLocal"]
