"""Main FastAPI application for the chat completions bridge."""

from __future__ import annotations

import logging
import socket
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.errors import openai_error_response
from .api.routes import chat_completions, health, list_models, responses_passthrough
from .core.ids import DEFAULT_IDS, IdGenerator
from .core.upstream_transport import get_upstream_transport
from .logging import setup_logging
from .settings import BridgeSettings, load_settings

logger = logging.getLogger("chatbridge")


def build_upstream_client(settings: BridgeSettings) -> httpx.AsyncClient:
    """Create the shared upstream client.

    Reads never time out so long generations can stream; connect, write and
    pool waits use the configured timeout.
    """
    timeout = httpx.Timeout(
        connect=settings.timeout_seconds,
        read=None,
        write=settings.timeout_seconds,
        pool=settings.timeout_seconds,
    )
    transport = get_upstream_transport(settings.upstream_url)
    if transport is not None:
        logger.info("Using registered transport for %s", settings.upstream_url)
    return httpx.AsyncClient(timeout=timeout, follow_redirects=False, transport=transport)


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return openai_error_response("Not found", 404, "invalid_request_error", "not_found")
    return await http_exception_handler(request, exc)


def create_app(
    settings: Optional[BridgeSettings] = None,
    ids: Optional[IdGenerator] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        settings: Resolved settings; loaded from the config file when omitted.
        ids: Id factories for generated chat, response and call ids.

    Returns:
        The configured FastAPI application instance.
    """
    if settings is None:
        settings = load_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = build_upstream_client(settings)
        app.state.upstream_client = client
        logger.info("Chat bridge starting up...")
        logger.info("Configured bind address %s:%s", settings.host, settings.port)
        if settings.host == "0.0.0.0":
            logger.info(
                "Reachable on local network at http://%s:%s",
                socket.gethostname(),
                settings.port,
            )
        logger.info("Upstream Responses API: %s", settings.upstream_url)
        try:
            yield
        finally:
            await client.aclose()
            logger.info("Chat bridge shut down")

    app = FastAPI(title="Chat Completions Bridge", lifespan=lifespan)
    app.state.settings = settings
    app.state.id_generator = ids or DEFAULT_IDS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(StarletteHTTPException, not_found_handler)

    # Register routes
    for path in ("/", "/health", "/v1/health"):
        app.get(path)(health)
    for path in ("/v1/chat/completions", "/chat/completions"):
        app.post(path)(chat_completions)
    for path in ("/v1/models", "/models"):
        app.get(path)(list_models)

    if settings.enable_responses_passthrough:
        for path in ("/v1/responses", "/openai/v1/responses"):
            app.post(path)(responses_passthrough)
        logger.info("Responses pass-through enabled")
    else:
        logger.info("Responses pass-through is disabled in configuration")

    return app


app = create_app()

__all__ = ["app", "build_upstream_client", "create_app"]
