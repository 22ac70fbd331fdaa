"""Stream adapter for converting Responses API SSE to Chat Completions chunks.

Responses API Events:
    event: response.output_text.delta
    data: {"type":"response.output_text.delta","delta":"Hello",...}

    event: response.function_call_arguments.delta
    data: {"type":"response.function_call_arguments.delta","call_id":"call_1","delta":"{\\"q\\""}

    event: response.completed
    data: {"type":"response.completed","response":{...,"usage":{...}}}

Chat Completion Events:
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"tool_calls":[...]},"index":0}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{},"finish_reason":"stop","index":0}]}
    data: [DONE]
"""

from __future__ import annotations

import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ..core.ids import DEFAULT_IDS, IdGenerator
from ..core.sse import SSEDecoder, SSEEvent, encode_sse_data, encode_sse_done, load_event_payload
from ..types.chat import ChatCompletionChunk, Usage
from ..types.responses import (
    EVENT_FUNCTION_CALL_ARGS_DELTA,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_RESPONSE_COMPLETED,
)
from .translator import convert_usage, item_call_id

logger = logging.getLogger("chatbridge")


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def remember_function_call_item(
    payload: dict[str, Any], items: dict[str, dict[str, str]]
) -> None:
    """Record call_id/name of a function_call announced by output_item.added.

    Some upstreams only reference the item id in later argument deltas.
    """
    item = payload.get("item")
    if not isinstance(item, dict) or item.get("type") != "function_call":
        return
    item_id = _as_str(item.get("id"))
    if not item_id:
        return
    items[item_id] = {
        "call_id": _as_str(item.get("call_id")) or item_id,
        "name": _as_str(item.get("name")),
    }


def resolve_function_call(
    payload: dict[str, Any], items: dict[str, dict[str, str]]
) -> tuple[str, str]:
    """Resolve (call_id, name) for an argument delta event.

    Ids that are not strings count as missing; ``""`` means unresolvable.
    """
    known = items.get(_as_str(payload.get("item_id")), {})
    call_id = item_call_id(payload) or known.get("call_id", "")
    name = _as_str(payload.get("name")) or known.get("name", "")
    return call_id, name


class ResponsesToChatStreamAdapter:
    """Converts a Responses API SSE stream into chat completion chunks.

    One adapter serves exactly one stream. It keeps:
    - the chat id and creation timestamp shared by every chunk
    - a call_id -> index map so each tool call keeps one stable index
    - whether the finish chunk and [DONE] sentinel were already sent
    """

    def __init__(
        self,
        model: Optional[str],
        ids: Optional[IdGenerator] = None,
    ):
        """Initialize the stream adapter.

        Args:
            model: Model name echoed in every chunk (from the client request)
            ids: Id factories; the chat id is drawn once here
        """
        ids = ids or DEFAULT_IDS
        self.model = model or "unknown"
        self.chat_id = ids.chat_id()
        self.created = int(time.time())

        # Tool call tracking
        self.tool_call_indices: dict[str, int] = {}
        self.next_tool_index = 0
        self.function_call_items: dict[str, dict[str, str]] = {}

        # Flags
        self.finished = False
        self.error: Optional[BaseException] = None

        self._decoder = SSEDecoder()

    async def adapt_stream(
        self,
        upstream: AsyncIterator[bytes],
        close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> AsyncIterator[bytes]:
        """Transform the upstream Responses stream into chat chunks.

        Args:
            upstream: Raw bytes from the upstream response
            close: Releases the upstream response; awaited exactly once

        Yields:
            Chat completion SSE frames as bytes
        """
        try:
            try:
                async for chunk in upstream:
                    for event in self._decoder.feed(chunk):
                        for frame in self._process_event(event):
                            yield frame
                for event in self._decoder.flush():
                    for frame in self._process_event(event):
                        yield frame
            except Exception as exc:
                self.error = exc
                logger.error(f"StreamAdapter: error while converting stream: {exc}")

            if not self.finished:
                for frame in self._finish(None):
                    yield frame
        finally:
            if close is not None:
                await close()

    def _process_event(self, event: SSEEvent) -> list[bytes]:
        """Convert one upstream event into zero or more chat frames."""
        if self.finished:
            return []

        payload = load_event_payload(event.data)
        if payload is None:
            if event.data and event.data != "[DONE]":
                logger.debug(f"StreamAdapter: Failed to parse: {event.data[:100]}")
            return []

        event_type = payload.get("type")

        if event_type == EVENT_OUTPUT_TEXT_DELTA:
            delta = payload.get("delta")
            if not isinstance(delta, str):
                return []
            return [self._emit_chunk({"content": delta})]

        if event_type == EVENT_FUNCTION_CALL_ARGS_DELTA:
            return self._process_arguments_delta(payload)

        if event_type == EVENT_OUTPUT_ITEM_ADDED:
            remember_function_call_item(payload, self.function_call_items)
            return []

        if event_type == EVENT_RESPONSE_COMPLETED:
            response = payload.get("response")
            usage = None
            if isinstance(response, dict) and response.get("usage"):
                usage = convert_usage(response["usage"])
            return self._finish(usage)

        # output_text.done repeats text already sent as deltas
        return []

    def _process_arguments_delta(self, payload: dict[str, Any]) -> list[bytes]:
        call_id, name = resolve_function_call(payload, self.function_call_items)
        if not call_id:
            logger.debug("StreamAdapter: skipping argument delta without a call id")
            return []

        fragment = payload.get("delta")
        if not isinstance(fragment, str):
            fragment = ""

        index = self.tool_call_indices.get(call_id)
        if index is None:
            index = self.next_tool_index
            self.next_tool_index += 1
            self.tool_call_indices[call_id] = index
            tool_call: dict[str, Any] = {
                "index": index,
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": fragment},
            }
        else:
            tool_call = {"index": index, "function": {"arguments": fragment}}

        return [self._emit_chunk({"tool_calls": [tool_call]})]

    def _finish(self, usage: Optional[Usage]) -> list[bytes]:
        """Emit the finish chunk and the [DONE] sentinel, once."""
        if self.finished:
            return []
        self.finished = True
        finish_reason = "tool_calls" if self.tool_call_indices else "stop"
        chunk = self._build_chunk({}, finish_reason)
        if usage:
            chunk["usage"] = usage
        return [encode_sse_data(chunk), encode_sse_done()]

    def _build_chunk(
        self, delta: dict[str, Any], finish_reason: Optional[str] = None
    ) -> ChatCompletionChunk:
        return {
            "id": self.chat_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }],
        }

    def _emit_chunk(self, delta: dict[str, Any]) -> bytes:
        return encode_sse_data(self._build_chunk(delta))


async def adapt_responses_stream(
    model: Optional[str],
    upstream: AsyncIterator[bytes],
    close: Optional[Callable[[], Awaitable[None]]] = None,
    ids: Optional[IdGenerator] = None,
) -> AsyncIterator[bytes]:
    """Convenience function to adapt a Responses stream.

    Args:
        model: Model name for the chunks
        upstream: Upstream Responses API SSE bytes
        close: Releases the upstream response when the stream ends
        ids: Id factories

    Yields:
        Chat completion SSE frames
    """
    adapter = ResponsesToChatStreamAdapter(model, ids)
    async for frame in adapter.adapt_stream(upstream, close):
        yield frame
