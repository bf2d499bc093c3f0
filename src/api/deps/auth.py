"""API key dependency."""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, status

from ..settings import APISettings, get_settings


def get_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    settings: APISettings = Depends(get_settings),
) -> str:
    if not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API key missing")
    if not any(secrets.compare_digest(x_api_key, key) for key in settings.api_keys):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return x_api_key
