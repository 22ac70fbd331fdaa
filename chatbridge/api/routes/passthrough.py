"""Raw pass-through endpoints for the Responses API and model listing.

Bodies travel unchanged in both directions; only the Authorization header is
resolved the same way as for chat completions.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect

from ...responses.dispatcher import TRANSPORT_FAILURE_STATUS, format_httpx_error
from ..dependencies import get_settings, get_upstream_client, upstream_headers
from ..errors import openai_error_response

logger = logging.getLogger("chatbridge")


async def _relay(upstream_response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        if upstream_response.is_stream_consumed:
            # Body was read eagerly (e.g. by an in-process transport)
            yield upstream_response.content
        else:
            async for chunk in upstream_response.aiter_raw():
                yield chunk
    finally:
        await upstream_response.aclose()


async def _forward(
    request: Request,
    method: str,
    url: str,
    content: Optional[bytes] = None,
    content_type: Optional[str] = None,
    extra_headers: Optional[dict[str, str]] = None,
) -> Response:
    settings = get_settings(request)
    client = get_upstream_client(request)
    headers = upstream_headers(request, settings, content_type=content_type)

    upstream_request = client.build_request(method, url, headers=headers, content=content)
    try:
        upstream_response = await client.send(upstream_request, stream=True)
    except httpx.HTTPError as exc:
        detail = format_httpx_error(exc, url)
        logger.error("Pass-through request to %s failed: %s", url, detail)
        return openai_error_response(
            f"Upstream request failed: {detail}",
            TRANSPORT_FAILURE_STATUS,
            "upstream_error",
        )

    logger.info(
        "Pass-through %s %s -> %d", method, url, upstream_response.status_code
    )
    response_headers = dict(extra_headers or {})
    # Raw bytes are relayed undecoded, so their encoding header goes with them.
    # An eagerly read body is already decoded.
    if (
        "content-encoding" in upstream_response.headers
        and not upstream_response.is_stream_consumed
    ):
        response_headers["Content-Encoding"] = upstream_response.headers["content-encoding"]
    return StreamingResponse(
        _relay(upstream_response),
        status_code=upstream_response.status_code,
        media_type=upstream_response.headers.get("content-type") or "application/json",
        headers=response_headers,
    )


async def responses_passthrough(request: Request) -> Response:
    """POST /v1/responses - forward the client body to the upstream unchanged."""
    settings = get_settings(request)
    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("Client disconnected before request body was fully read")
        return Response(status_code=499)

    return await _forward(
        request,
        "POST",
        settings.upstream_url,
        content=body,
        content_type="application/json",
        extra_headers={"Cache-Control": "no-cache"},
    )


async def list_models(request: Request) -> Response:
    """GET /v1/models - relay the upstream model list."""
    settings = get_settings(request)
    return await _forward(request, "GET", settings.models_url)
