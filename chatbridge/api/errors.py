"""OpenAI-style error bodies."""

from __future__ import annotations

import json
from typing import Any, Optional

from fastapi.responses import JSONResponse


def build_error_body(
    message: str,
    error_type: Optional[str] = None,
    code: Optional[str] = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"message": message}
    if error_type:
        error["type"] = error_type
    if code:
        error["code"] = code
    return {"error": error}


def openai_error_response(
    message: str,
    status_code: int,
    error_type: Optional[str] = None,
    code: Optional[str] = None,
) -> JSONResponse:
    """Return ``{"error": {"message", "type", "code"}}`` with the given status."""
    return JSONResponse(
        status_code=status_code,
        content=build_error_body(message, error_type, code),
    )


def upstream_rejection_response(status_code: int, body: str) -> JSONResponse:
    """Relay the upstream's final rejection.

    A JSON object body is passed through as-is; anything else becomes the
    message of an OpenAI error object.
    """
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        parsed = None
    if not isinstance(parsed, dict):
        parsed = build_error_body(body)
    return JSONResponse(status_code=status_code, content=parsed)
