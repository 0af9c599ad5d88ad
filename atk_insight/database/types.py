from sqlalchemy import types
from sqlalchemy.types import TypeDecorator

from atk_insight.core.dates import ensure_utc


class UTCDateTime(TypeDecorator):
    """Timestamp stored as UTC on every backend.

    SQLite keeps only the wall-clock part of an aware datetime, so values are
    converted to UTC before binding; naive values are taken to be UTC already.
    """

    impl = types.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = ensure_utc(value)
        if value is None:
            return value
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


__all__ = ["UTCDateTime"]
