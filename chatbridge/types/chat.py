"""Types for the client-facing Chat Completions dialect.

These schemas describe what clients send to ``/v1/chat/completions`` and what
the bridge hands back, both as a single object and as streamed chunks.
Inbound payloads are untrusted JSON, so every field is optional.
"""

from typing import Any
from typing_extensions import TypedDict


class FunctionCall(TypedDict, total=False):
    """A function call within a tool call.

    Attributes:
        name: Name of the function to call. Omitted in streamed follow-up
            chunks where the name was already stated.
        arguments: JSON string with the arguments, or a fragment of it when
            streaming.
    """
    name: str | None
    arguments: str | None


class ToolCall(TypedDict, total=False):
    """A tool call requested by the assistant.

    Attributes:
        id: Correlation id, echoed back by the matching tool message.
        type: Typically "function".
        function: The function and its arguments.
        index: Stable position of the call within a streamed response.
    """
    id: str
    type: str
    function: FunctionCall
    index: int


class ContentPart(TypedDict, total=False):
    """A content part for multi-modal messages.

    Attributes:
        type: "text", "image_url", or a Responses-style alias such as
            "input_text" / "input_image".
        text: Text content (for text parts).
        image_url: Either a URL string or ``{"url": ..., "detail": ...}``.
    """
    type: str
    text: str | None
    image_url: str | dict[str, Any] | None


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation.

    Attributes:
        role: system, developer, user, assistant or tool. Anything else is
            treated as user.
        content: A string, a list of content parts, or None.
        tool_calls: Tool calls made by the assistant.
        function_call: Legacy single function call made by the assistant.
        tool_call_id: Correlation id of the call a tool message answers.
    """
    role: str
    content: str | list[ContentPart] | None
    name: str | None
    tool_calls: list[ToolCall] | None
    function_call: FunctionCall | None
    tool_call_id: str | None


class ChatCompletionRequest(TypedDict, total=False):
    """Inbound chat completion request."""
    model: str
    messages: list[ChatMessage]
    tools: list[dict[str, Any]]
    tool_choice: str | dict[str, Any]
    max_tokens: int | None
    max_completion_tokens: int | None
    temperature: float | None
    top_p: float | None
    stop: str | list[str] | None
    stream: bool
    reasoning_effort: str | None
    reasoningEffort: str | None
    response_format: dict[str, Any] | None


class Delta(TypedDict, total=False):
    """Incremental update carried by a streamed choice."""
    role: str | None
    content: str | None
    tool_calls: list[ToolCall] | None


class Choice(TypedDict, total=False):
    """A choice in a chat completion or chunk.

    Attributes:
        index: Always 0; the bridge produces a single choice.
        delta: The increment, for streamed chunks.
        message: The complete message, for non-streamed responses.
        finish_reason: "stop" or "tool_calls"; None on intermediate chunks.
        logprobs: Always None.
    """
    index: int
    delta: Delta | None
    message: ChatMessage | None
    finish_reason: str | None
    logprobs: dict[str, Any] | None


class Usage(TypedDict, total=False):
    """Token usage information.

    Attributes:
        prompt_tokens: Tokens in the prompt.
        completion_tokens: Tokens in the completion.
        total_tokens: Total tokens used.
        prompt_tokens_details: Breakdown of prompt tokens (cached_tokens).
        completion_tokens_details: Breakdown of completion tokens
            (reasoning_tokens).
    """
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    prompt_tokens_details: dict[str, int]
    completion_tokens_details: dict[str, int]


class ChatCompletionChunk(TypedDict, total=False):
    """A streamed chunk of a chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage


class ChatCompletionResponse(TypedDict, total=False):
    """A complete (non-streaming) chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage
