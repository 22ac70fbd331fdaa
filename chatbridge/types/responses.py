"""Types for the upstream Responses API dialect.

Only the subset the bridge produces or consumes is modelled: request bodies
sent upstream, the complete response object, and the streaming events the
transcoder and collector understand.
"""

from typing import Any, Literal, Union
from typing_extensions import TypedDict


# =============================================================================
# Input Content Types
# =============================================================================

class InputText(TypedDict):
    """Plain text input content."""
    type: Literal["input_text"]
    text: str


class InputImage(TypedDict, total=False):
    """Image input content."""
    type: Literal["input_image"]
    image_url: str  # URL or data URI


InputContent = Union[InputText, InputImage, dict[str, Any]]
"""Input parts; unknown part types are passed through untouched."""


# =============================================================================
# Items
# =============================================================================

class MessageInputItem(TypedDict, total=False):
    """A role-tagged message in ``input``."""
    role: Literal["user", "assistant", "developer"]
    content: str | list[InputContent]


class OutputText(TypedDict, total=False):
    """Text output content."""
    type: Literal["output_text"]
    text: str
    annotations: list[dict[str, Any]]


class MessageItem(TypedDict, total=False):
    """A message item in ``output``."""
    id: str
    type: Literal["message"]
    role: str
    status: str
    content: list[OutputText]


class FunctionCallItem(TypedDict, total=False):
    """A function call, either replayed in ``input`` or produced in ``output``.

    ``call_id`` is the correlation key shared with the chat dialect's
    ``tool_calls[].id``; ``arguments`` is always a JSON string.
    """
    id: str
    type: Literal["function_call"]
    call_id: str
    name: str
    arguments: str
    status: str


class FunctionCallOutputItem(TypedDict, total=False):
    """The result of a previously requested function call."""
    type: Literal["function_call_output"]
    call_id: str
    output: str


InputItem = Union[MessageInputItem, FunctionCallItem, FunctionCallOutputItem]
OutputItem = Union[MessageItem, FunctionCallItem]


# =============================================================================
# Request
# =============================================================================

class FunctionTool(TypedDict, total=False):
    """A flattened function tool definition."""
    type: Literal["function"]
    name: str
    description: str
    parameters: dict[str, Any]


class FunctionToolChoice(TypedDict):
    """Explicit function tool choice."""
    type: Literal["function"]
    name: str


class ReasoningConfig(TypedDict, total=False):
    effort: str


class TextConfig(TypedDict, total=False):
    format: dict[str, Any]


class ResponseRequest(TypedDict, total=False):
    """Canonical upstream request.

    Variants may rename ``max_output_tokens`` to ``max_tokens`` or replace
    ``reasoning`` with a flat ``reasoning_effort`` string.
    """
    model: str
    input: list[InputItem]
    instructions: str
    tools: list[FunctionTool | dict[str, Any]]
    tool_choice: str | FunctionToolChoice | dict[str, Any]
    stream: bool
    max_output_tokens: int
    max_tokens: int
    temperature: float
    top_p: float
    stop: str | list[str]
    reasoning: ReasoningConfig
    reasoning_effort: str
    text: TextConfig


# =============================================================================
# Response
# =============================================================================

class InputTokensDetails(TypedDict, total=False):
    cached_tokens: int


class OutputTokensDetails(TypedDict, total=False):
    reasoning_tokens: int


class ResponseUsage(TypedDict, total=False):
    """Token usage information for a response."""
    input_tokens: int
    output_tokens: int
    total_tokens: int
    input_tokens_details: InputTokensDetails
    output_tokens_details: OutputTokensDetails


class ResponseObject(TypedDict, total=False):
    """A complete response object, as returned upstream or synthesized."""
    id: str
    object: Literal["response"]
    created_at: float
    status: str
    model: str
    output: list[OutputItem]
    output_text: str
    usage: ResponseUsage


# =============================================================================
# Streaming Event Types
# =============================================================================

EVENT_RESPONSE_CREATED = "response.created"
EVENT_RESPONSE_COMPLETED = "response.completed"
EVENT_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_OUTPUT_TEXT_DELTA = "response.output_text.delta"
EVENT_OUTPUT_TEXT_DONE = "response.output_text.done"
EVENT_FUNCTION_CALL_ARGS_DELTA = "response.function_call_arguments.delta"
