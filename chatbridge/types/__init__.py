"""Type definitions for the bridge."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    ContentPart,
    Delta,
    FunctionCall,
    ToolCall,
    Usage,
)
from .responses import (
    FunctionCallItem,
    FunctionCallOutputItem,
    InputItem,
    MessageItem,
    OutputItem,
    ResponseObject,
    ResponseRequest,
    ResponseUsage,
)

__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "ContentPart",
    "Delta",
    "FunctionCall",
    "FunctionCallItem",
    "FunctionCallOutputItem",
    "InputItem",
    "MessageItem",
    "OutputItem",
    "ResponseObject",
    "ResponseRequest",
    "ResponseUsage",
    "ToolCall",
    "Usage",
]
