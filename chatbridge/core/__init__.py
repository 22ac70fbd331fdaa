"""Core module initialization."""

from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    ProxyError,
    UpstreamProtocolError,
)
from .ids import DEFAULT_IDS, IdGenerator
from .sse import SSEDecoder, SSEEvent, encode_sse_data, encode_sse_done, parse_sse_text

__all__ = [
    "ConfigurationError",
    "DEFAULT_IDS",
    "IdGenerator",
    "InvalidRequestError",
    "ProxyError",
    "SSEDecoder",
    "SSEEvent",
    "UpstreamProtocolError",
    "encode_sse_data",
    "encode_sse_done",
    "parse_sse_text",
]
