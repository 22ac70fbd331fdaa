"""SSE (Server-Sent Events) framing helpers."""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from typing import Any, Iterator, Optional

DONE_SENTINEL = "[DONE]"


@dataclass
class SSEEvent:
    """One blank-line delimited event."""

    data: str
    event: Optional[str] = None


class SSEDecoder:
    """Incremental SSE decoder.

    Bytes are decoded as UTF-8 without splitting multi-byte characters across
    reads. Complete frames are returned as soon as their terminating blank
    line arrives; partial frames stay buffered until the next ``feed``.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        self._buffer = self._buffer.replace("\r\n", "\n")

        sep_index = self._buffer.rfind("\n\n")
        if sep_index == -1:
            return []
        complete = self._buffer[: sep_index + 2]
        self._buffer = self._buffer[sep_index + 2:]
        return parse_sse_text(complete)

    def flush(self) -> list[SSEEvent]:
        """Parse whatever is left once the byte stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        leftover = self._buffer.replace("\r\n", "\n")
        self._buffer = ""
        if not leftover.strip():
            return []
        return parse_sse_text(leftover)


def parse_sse_text(text: str) -> list[SSEEvent]:
    """Split SSE text into events.

    Lines other than ``event:`` and ``data:`` (comments, ids, retry hints) are
    ignored. A block with neither an event name nor data yields nothing.
    """
    events: list[SSEEvent] = []
    event_name: Optional[str] = None
    data_lines: list[str] = []

    def flush() -> None:
        nonlocal event_name, data_lines
        if event_name is None and not data_lines:
            return
        events.append(SSEEvent(data="\n".join(data_lines), event=event_name))
        event_name = None
        data_lines = []

    for line in text.replace("\r\n", "\n").split("\n"):
        if line == "":
            flush()
        elif line.startswith("event:"):
            event_name = line[6:].strip()
        elif line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
    flush()
    return events


def iter_sse_data_lines(text: str) -> Iterator[str]:
    """Yield the payload of every ``data:`` line, skipping blanks and [DONE]."""
    for line in text.split("\n"):
        line = line.strip()
        if not line.startswith("data:"):
            continue
        data = line[5:].strip()
        if not data or data == DONE_SENTINEL:
            continue
        yield data


def load_event_payload(data: str) -> Optional[dict[str, Any]]:
    """Parse an event payload, returning None for anything but a JSON object."""
    if data == DONE_SENTINEL:
        return None
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def encode_sse_data(payload: Any) -> bytes:
    """Frame a JSON payload (or a raw string) as a single ``data:`` event."""
    if isinstance(payload, str):
        body = payload
    else:
        body = json.dumps(payload, ensure_ascii=False)
    return f"data: {body}\n\n".encode("utf-8")


def encode_sse_done() -> bytes:
    return encode_sse_data(DONE_SENTINEL)
