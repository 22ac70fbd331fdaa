"""Chat Completions to Responses API bridging.

This package turns a Chat Completions request into a Responses API request,
probes upstream dialects, and converts the answer back.

Key components:
- content: message content normalization
- translator: request building and complete-response assembly
- variants: ordered dialect variants of one canonical request
- dispatcher: sequential dispatch across variants
- stream_adapter: convert Responses API SSE to chat completion chunks
- collector: buffer an upstream answer into one response object
"""

from .collector import collect_sse_text, collect_upstream_response
from .content import normalize_content, to_upstream_parts
from .dispatcher import DispatchResult, dispatch_variants
from .stream_adapter import ResponsesToChatStreamAdapter, adapt_responses_stream
from .translator import (
    build_chat_response,
    build_upstream_request,
    convert_usage,
    extract_text,
    extract_tool_calls,
)
from .variants import generate_variants

__all__ = [
    "DispatchResult",
    "ResponsesToChatStreamAdapter",
    "adapt_responses_stream",
    "build_chat_response",
    "build_upstream_request",
    "collect_sse_text",
    "collect_upstream_response",
    "convert_usage",
    "dispatch_variants",
    "extract_text",
    "extract_tool_calls",
    "generate_variants",
    "normalize_content",
    "to_upstream_parts",
]
