"""OpenAI-compatible chat completions endpoint backed by a Responses API."""

import json
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from ...core.exceptions import InvalidRequestError, UpstreamProtocolError
from ...responses import (
    ResponsesToChatStreamAdapter,
    build_chat_response,
    build_upstream_request,
    collect_upstream_response,
    dispatch_variants,
    generate_variants,
)
from ...types.chat import ChatCompletionRequest
from ..dependencies import get_id_generator, get_settings, get_upstream_client, upstream_headers
from ..errors import openai_error_response, upstream_rejection_response

logger = logging.getLogger("chatbridge")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def parse_chat_payload(body: bytes) -> ChatCompletionRequest:
    """Decode the client body, which must be a JSON object."""
    try:
        payload = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError(f"Invalid JSON payload: {exc}", code="invalid_json") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return payload


async def chat_completions(request: Request) -> Response:
    """POST /v1/chat/completions - translate, dispatch and convert back.

    Args:
        request: The FastAPI request object.

    Returns:
        A JSONResponse, or a StreamingResponse of chat completion chunks.
    """
    logger.info(f"Handling {request.method} request to {request.url.path}")

    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("Client disconnected before request body was fully read")
        return Response(status_code=499)

    try:
        payload = parse_chat_payload(body)
    except InvalidRequestError as exc:
        logger.error(exc.message)
        return openai_error_response(exc.message, 400, "invalid_request_error", exc.code)

    try:
        return await _complete(request, payload)
    except UpstreamProtocolError as exc:
        logger.error(f"Upstream protocol error: {exc.message}")
        return openai_error_response(exc.message, exc.status_code, "upstream_error")
    except Exception as exc:
        logger.exception("Unhandled error while handling chat completion")
        return openai_error_response(str(exc) or "Internal error", 500, "server_error")


async def _complete(request: Request, payload: ChatCompletionRequest) -> Response:
    settings = get_settings(request)
    client = get_upstream_client(request)
    ids = get_id_generator(request)

    model = payload.get("model")
    is_stream = bool(payload.get("stream"))

    upstream_request = build_upstream_request(payload, ids)
    variants = generate_variants(upstream_request)
    logger.info(
        f"Chat request for model '{model}' (stream={is_stream}) "
        f"-> {len(variants)} upstream variant(s)"
    )

    result = await dispatch_variants(
        client,
        settings.upstream_url,
        upstream_headers(request, settings),
        variants,
    )

    if not result.ok:
        if result.transport_error:
            return openai_error_response(result.body, result.status, "upstream_error")
        return upstream_rejection_response(result.status, result.body)

    upstream_response = result.response

    if is_stream:
        adapter = ResponsesToChatStreamAdapter(model, ids)
        return StreamingResponse(
            adapter.adapt_stream(
                upstream_response.aiter_bytes(),
                close=upstream_response.aclose,
            ),
            media_type="text/event-stream; charset=utf-8",
            headers=STREAM_HEADERS,
        )

    upstream_json = await collect_upstream_response(upstream_response, ids)
    if not upstream_json:
        return openai_error_response("Upstream returned an empty response", 502, "upstream_error")

    return JSONResponse(content=build_chat_response(upstream_json, payload, ids))
