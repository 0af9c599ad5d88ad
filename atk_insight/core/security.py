from __future__ import annotations

import hmac
from typing import Optional

from fastapi import HTTPException, status

from atk_insight.config import get_settings


def load_api_keys() -> set[str]:
    settings = get_settings()
    keys = set()
    if settings.API_KEYS:
        for value in settings.API_KEYS.split(","):
            value = value.strip()
            if value:
                keys.add(value)
    return keys


def authenticate_request(api_key: Optional[str]) -> Optional[dict]:
    """Gate trigger endpoints behind API_KEYS; open when no keys are configured."""
    keys = load_api_keys()
    if not keys:
        return None
    if api_key and any(hmac.compare_digest(api_key, key) for key in keys):
        return {"auth_type": "api_key"}
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
    )
