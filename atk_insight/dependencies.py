from fastapi import Request

from atk_insight.config import get_settings
from atk_insight.core.security import authenticate_request
from atk_insight.database.session import SessionLocal, get_db


def get_session_factory():
    return SessionLocal


def require_auth(request: Request):
    settings = get_settings()
    api_key = request.headers.get(settings.API_KEY_HEADER) or request.headers.get("api-key")
    return authenticate_request(api_key)


__all__ = ["get_db", "get_session_factory", "require_auth"]
