"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import itertools
import json
from typing import Any, Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from chatbridge.core.ids import IdGenerator
from chatbridge.settings import BridgeSettings

UPSTREAM_URL = "http://upstream.test/v1/responses"


def make_id_generator() -> IdGenerator:
    """Deterministic ids: chatcmpl-test-1, resp_test_1, call_test_1, ..."""
    chat_ids = itertools.count(1)
    response_ids = itertools.count(1)
    call_ids = itertools.count(1)
    return IdGenerator(
        chat_id=lambda: f"chatcmpl-test-{next(chat_ids)}",
        response_id=lambda: f"resp_test_{next(response_ids)}",
        call_id=lambda: f"call_test_{next(call_ids)}",
    )


def sse_body(*events: dict[str, Any], done: bool = False) -> bytes:
    """Encode Responses API events as an SSE body."""
    frames = []
    for event in events:
        frames.append(f"event: {event['type']}\ndata: {json.dumps(event)}\n\n")
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode("utf-8")


@pytest.fixture
def ids() -> IdGenerator:
    return make_id_generator()


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    from chatbridge.core.upstream_transport import clear_upstream_transports

    yield
    clear_upstream_transports()


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def bridge_client(
    clear_transport_registry: None,
) -> Generator[Callable[..., TestClient], None, None]:
    """Factory for a TestClient whose upstream is an httpx.MockTransport.

    Usage:
        def test_chat(bridge_client):
            client = bridge_client(handler)
            client.post("/v1/chat/completions", json={...})
    """
    from chatbridge.core.upstream_transport import register_upstream_transport_for_url
    from chatbridge.main import create_app

    clients: list[TestClient] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        **overrides: Any,
    ) -> TestClient:
        settings = BridgeSettings(upstream_url=UPSTREAM_URL, **overrides)
        register_upstream_transport_for_url(settings.upstream_url, httpx.MockTransport(handler))
        client = TestClient(create_app(settings, ids=make_id_generator()))
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
