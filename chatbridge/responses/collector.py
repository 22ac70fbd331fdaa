"""Buffer an upstream answer into one complete Responses API object.

The non-streaming chat path still has to cope with upstreams that answer in
SSE even when ``stream`` is false, so the collector accepts either shape.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import httpx

from ..core.exceptions import UpstreamProtocolError
from ..core.ids import DEFAULT_IDS, IdGenerator
from ..core.sse import iter_sse_data_lines, load_event_payload
from ..types.responses import (
    EVENT_FUNCTION_CALL_ARGS_DELTA,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_OUTPUT_TEXT_DONE,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_CREATED,
    FunctionCallItem,
    MessageItem,
    OutputItem,
    ResponseObject,
)
from .stream_adapter import remember_function_call_item, resolve_function_call
from .translator import coerce_arguments, item_call_id

logger = logging.getLogger("chatbridge")


class _StreamAccumulator:
    """State gathered while scanning a buffered SSE body."""

    def __init__(self) -> None:
        self.response_id: Optional[str] = None
        self.model: Optional[str] = None
        self.created_at: Optional[int] = None
        self.usage: Optional[dict[str, Any]] = None
        self.text_parts: list[str] = []
        self.saw_delta = False
        # call_id -> {"name", "arguments"}, in first-seen order
        self.calls: dict[str, dict[str, str]] = {}
        self.function_call_items: dict[str, dict[str, str]] = {}

    def apply(self, payload: dict[str, Any]) -> None:
        event_type = payload.get("type")

        if event_type == EVENT_RESPONSE_CREATED:
            self._take_metadata(payload.get("response"))

        elif event_type == EVENT_OUTPUT_TEXT_DELTA:
            delta = payload.get("delta")
            if isinstance(delta, str):
                self.text_parts.append(delta)
                self.saw_delta = True

        elif event_type == EVENT_OUTPUT_TEXT_DONE:
            text = payload.get("text")
            if not self.saw_delta and isinstance(text, str):
                self.text_parts.append(text)

        elif event_type == EVENT_OUTPUT_ITEM_ADDED:
            remember_function_call_item(payload, self.function_call_items)

        elif event_type == EVENT_FUNCTION_CALL_ARGS_DELTA:
            call_id, name = resolve_function_call(payload, self.function_call_items)
            if not call_id:
                return
            fragment = payload.get("delta")
            fragment = fragment if isinstance(fragment, str) else ""
            call = self.calls.get(call_id)
            if call is None:
                self.calls[call_id] = {"name": name, "arguments": fragment}
            else:
                call["arguments"] += fragment

        elif event_type == EVENT_RESPONSE_COMPLETED:
            response = payload.get("response")
            self._take_metadata(response)
            if isinstance(response, dict):
                if isinstance(response.get("usage"), dict):
                    self.usage = response["usage"]
                self._take_completed_output(response)

    def _take_metadata(self, response: Any) -> None:
        if not isinstance(response, dict):
            return
        if response.get("id"):
            self.response_id = response["id"]
        if response.get("model"):
            self.model = response["model"]
        if response.get("created_at") is not None:
            self.created_at = response["created_at"]

    def _take_completed_output(self, response: dict[str, Any]) -> None:
        fill_text = not self.text_parts
        fill_calls = not self.calls
        if fill_text and isinstance(response.get("output_text"), str):
            self.text_parts.append(response["output_text"])
            fill_text = False

        output = response.get("output")
        if not isinstance(output, list):
            return
        for item in output:
            if not isinstance(item, dict):
                continue
            if fill_text and item.get("type") == "message":
                content = item.get("content")
                for part in content if isinstance(content, list) else []:
                    if (
                        isinstance(part, dict)
                        and part.get("type") == "output_text"
                        and isinstance(part.get("text"), str)
                    ):
                        self.text_parts.append(part["text"])
            elif fill_calls and item.get("type") == "function_call":
                call_id = item_call_id(item)
                if not call_id or call_id in self.calls:
                    continue
                self.calls[call_id] = {
                    "name": item.get("name") if isinstance(item.get("name"), str) else "",
                    "arguments": coerce_arguments(item.get("arguments")),
                }

    def build(self, ids: IdGenerator) -> ResponseObject:
        text = "".join(self.text_parts)
        output: list[OutputItem] = []
        if text:
            message: MessageItem = {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text}],
            }
            output.append(message)
        for call_id, call in self.calls.items():
            function_call: FunctionCallItem = {
                "type": "function_call",
                "call_id": call_id,
                "name": call["name"],
                "arguments": call["arguments"],
            }
            output.append(function_call)

        result: ResponseObject = {
            "id": self.response_id or ids.response_id(),
            "object": "response",
            "created_at": self.created_at if self.created_at is not None else int(time.time()),
            "model": self.model or "",
            "output": output,
            "output_text": text,
        }
        if self.usage is not None:
            result["usage"] = self.usage
        return result


def collect_sse_text(text: str, ids: Optional[IdGenerator] = None) -> ResponseObject:
    """Fold a buffered Responses SSE body into one response object."""
    accumulator = _StreamAccumulator()
    for data in iter_sse_data_lines(text):
        payload = load_event_payload(data)
        if payload is None:
            logger.debug(f"Collector: skipping unparseable frame: {data[:100]}")
            continue
        accumulator.apply(payload)
    return accumulator.build(ids or DEFAULT_IDS)


async def collect_upstream_response(
    response: httpx.Response, ids: Optional[IdGenerator] = None
) -> Optional[ResponseObject]:
    """Read an accepted upstream response into a complete response object.

    Args:
        response: Open upstream response; it is closed before returning
        ids: Id factories used when upstream reports no response id

    Returns:
        The response object, or None when the upstream body was empty

    Raises:
        UpstreamProtocolError: If a JSON content type carries invalid JSON
    """
    try:
        body = await response.aread()
    finally:
        await response.aclose()

    content_type = response.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        if not body.strip():
            return None
        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamProtocolError(f"Upstream returned invalid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise UpstreamProtocolError("Upstream returned a JSON value that is not an object")
        return parsed

    text = body.decode("utf-8", errors="replace")
    if not text.strip():
        logger.warning("Collector: upstream returned an empty body")
        return None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    return collect_sse_text(text, ids)
