"""Sequential dispatch of request variants to the upstream."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import httpx

logger = logging.getLogger("chatbridge")

# Statuses that signal the upstream did not understand the request shape
SCHEMA_MISMATCH_STATUSES = frozenset({400, 422})
TRANSPORT_FAILURE_STATUS = 502


@dataclass
class DispatchResult:
    """Outcome of walking the variant list.

    On success ``response`` is the accepted upstream response, still open so
    its body can be streamed; the caller must close it. On failure ``status``
    and ``body`` describe the last upstream answer, or the transport error.
    """

    ok: bool
    response: Optional[httpx.Response] = None
    status: int = TRANSPORT_FAILURE_STATUS
    body: str = ""
    attempts: int = 0
    variant_index: Optional[int] = None
    transport_error: bool = False


def format_httpx_error(exc: httpx.HTTPError, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = exc.request
    except RuntimeError:
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    return "; ".join(parts)


async def dispatch_variants(
    client: httpx.AsyncClient,
    url: str,
    headers: Mapping[str, str],
    variants: Sequence[Mapping[str, Any]],
) -> DispatchResult:
    """Send variants one at a time until the upstream accepts one.

    A 400/422 moves on to the next variant. Any other error status, or a
    rejection of the last variant, ends the walk. Transport failures are not
    retried: they point at connectivity, not at the request shape.

    Args:
        client: Shared HTTP client
        url: Upstream Responses API URL
        headers: Headers sent unchanged with every attempt
        variants: Request bodies in preference order

    Returns:
        DispatchResult describing the accepted response or the final failure
    """
    result = DispatchResult(ok=False)

    for index, variant in enumerate(variants):
        body = json.dumps(variant, ensure_ascii=False).encode("utf-8")
        request = client.build_request("POST", url, headers=dict(headers), content=body)
        result.attempts += 1

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, url)
            logger.error("Dispatcher: upstream request to %s failed: %s", url, detail)
            return DispatchResult(
                ok=False,
                status=TRANSPORT_FAILURE_STATUS,
                body=f"Upstream request failed: {detail}",
                attempts=result.attempts,
                transport_error=True,
            )

        if not response.is_error:
            logger.info(
                "Dispatcher: variant %d accepted with status %d",
                index,
                response.status_code,
            )
            result.ok = True
            result.response = response
            result.status = response.status_code
            result.variant_index = index
            return result

        try:
            await response.aread()
            result.body = response.text
        except httpx.HTTPError as exc:
            logger.warning(
                "Dispatcher: could not read rejection body from %s: %s",
                url,
                format_httpx_error(exc, url),
            )
            result.body = ""
        finally:
            await response.aclose()
        result.status = response.status_code

        has_next = index + 1 < len(variants)
        if response.status_code in SCHEMA_MISMATCH_STATUSES and has_next:
            logger.info(
                "Dispatcher: variant %d returned %d, trying variant %d",
                index,
                response.status_code,
                index + 1,
            )
            continue

        logger.warning(
            "Dispatcher: upstream returned %d after %d attempt(s)",
            response.status_code,
            result.attempts,
        )
        break

    return result
