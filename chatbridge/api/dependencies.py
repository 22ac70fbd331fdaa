"""Accessors for per-application state shared by the routes."""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import Request

from ..core.ids import DEFAULT_IDS, IdGenerator
from ..settings import BridgeSettings


def get_settings(request: Request) -> BridgeSettings:
    return request.app.state.settings


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.upstream_client


def get_id_generator(request: Request) -> IdGenerator:
    return getattr(request.app.state, "id_generator", None) or DEFAULT_IDS


def upstream_headers(
    request: Request,
    settings: BridgeSettings,
    content_type: Optional[str] = "application/json",
) -> dict[str, str]:
    """Headers sent upstream.

    The client's Authorization header is forwarded unmodified; the configured
    key is used only when the client sent none.
    """
    headers: dict[str, str] = {}
    if content_type:
        headers["Content-Type"] = content_type
    authorization = request.headers.get("authorization")
    if authorization:
        headers["Authorization"] = authorization
    elif settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"
    return headers
