"""Bidirectional translation between Chat Completions and the Responses API.

This module handles:
1. Converting Chat Completions requests to a canonical Responses API request
2. Converting complete Responses API objects back to Chat Completions
3. Tool/function call translation in both directions
4. Usage statistics translation
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Mapping, Optional

from ..core.ids import DEFAULT_IDS, IdGenerator
from ..types.chat import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    ToolCall,
    Usage,
)
from ..types.responses import (
    FunctionCallItem,
    FunctionCallOutputItem,
    InputItem,
    ResponseObject,
    ResponseRequest,
    ResponseUsage,
)
from .content import normalize_content, to_upstream_parts

logger = logging.getLogger("chatbridge")


def coerce_arguments(arguments: Any) -> str:
    """Return tool call arguments as a JSON string."""
    if isinstance(arguments, str):
        return arguments
    if arguments is None:
        arguments = {}
    return json.dumps(arguments, ensure_ascii=False)


# =============================================================================
# Chat Completions → Responses API
# =============================================================================


def _collect_tool_calls(
    message: ChatMessage, ids: IdGenerator
) -> list[dict[str, str]]:
    """Gather tool call records from an assistant message.

    Both the ``tool_calls`` list and the legacy ``function_call`` field are
    read. Calls without a function name are skipped.
    """
    records: list[dict[str, str]] = []

    tool_calls = message.get("tool_calls")
    for tc in tool_calls if isinstance(tool_calls, list) else []:
        if not isinstance(tc, dict):
            continue
        function = tc.get("function") if isinstance(tc.get("function"), dict) else None
        name = function.get("name") if function else None
        if not isinstance(name, str) or not name:
            continue
        call_id = tc.get("id") if isinstance(tc.get("id"), str) else ids.call_id()
        records.append({
            "call_id": call_id,
            "name": name,
            "arguments": coerce_arguments(function.get("arguments")),
        })

    function_call = message.get("function_call")
    if isinstance(function_call, dict):
        name = function_call.get("name")
        if isinstance(name, str) and name:
            call_id = message.get("tool_call_id") or message.get("id") or ids.call_id()
            records.append({
                "call_id": call_id,
                "name": name,
                "arguments": coerce_arguments(function_call.get("arguments")),
            })

    return records


def convert_messages(
    messages: Any, ids: IdGenerator = DEFAULT_IDS
) -> tuple[Optional[str], list[InputItem]]:
    """Split chat messages into top-level instructions and input items.

    Returns:
        Tuple of (instructions, input items). Instructions is None when no
        system/developer message carried text.
    """
    instruction_parts: list[str] = []
    items: list[InputItem] = []

    for message in messages if isinstance(messages, list) else []:
        if not isinstance(message, dict):
            continue
        role = message.get("role") or "user"

        if role in ("system", "developer"):
            text = normalize_content(message.get("content"))
            if text.strip():
                instruction_parts.append(text.strip())
            continue

        if role == "tool":
            call_id = message.get("tool_call_id")
            if call_id is None:
                call_id = message.get("call_id")
            if call_id is None:
                call_id = message.get("id")
            if not call_id:
                logger.debug("Translator: dropping tool message without a call id")
                continue
            output_item: FunctionCallOutputItem = {
                "type": "function_call_output",
                "call_id": call_id,
                "output": normalize_content(message.get("content")),
            }
            items.append(output_item)
            continue

        if role == "assistant":
            text = normalize_content(message.get("content"))
            if text.strip():
                items.append({"role": "assistant", "content": text})
            for call in _collect_tool_calls(message, ids):
                call_item: FunctionCallItem = {
                    "type": "function_call",
                    "id": f"fc_{call['call_id']}",
                    "call_id": call["call_id"],
                    "name": call["name"],
                    "arguments": call["arguments"],
                }
                items.append(call_item)
            continue

        content = to_upstream_parts(message.get("content"))
        if isinstance(content, str):
            if content.strip():
                items.append({"role": "user", "content": content})
        elif content:
            items.append({"role": "user", "content": content})

    instructions = "\n".join(instruction_parts)
    return (instructions or None), items


def convert_tools(tools: Any) -> Optional[list[Any]]:
    """Flatten Chat Completions function tools into Responses API tools.

    ``{"type": "function", "function": {...}}`` becomes
    ``{"type": "function", "name": ..., "description": ..., "parameters": ...}``.
    Entries that are not function tools, or have no resolvable name, are
    returned unmodified.
    """
    if not isinstance(tools, list):
        return None

    converted: list[Any] = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type") != "function":
            converted.append(tool)
            continue

        function = tool.get("function") if isinstance(tool.get("function"), dict) else {}
        name = tool.get("name")
        if not isinstance(name, str):
            name = function.get("name") if isinstance(function.get("name"), str) else ""
        if not name:
            converted.append(tool)
            continue

        description = tool.get("description")
        if not isinstance(description, str):
            description = function.get("description")
        parameters = tool.get("parameters")
        if not isinstance(parameters, dict):
            parameters = function.get("parameters")

        flat: dict[str, Any] = {"type": "function", "name": name}
        if isinstance(description, str) and description.strip():
            flat["description"] = description
        if isinstance(parameters, dict):
            flat["parameters"] = parameters
        converted.append(flat)
    return converted


def convert_tool_choice(tool_choice: Any) -> Optional[Any]:
    """Convert a Chat Completions tool_choice to the Responses API shape."""
    if tool_choice is None:
        return None
    if isinstance(tool_choice, str):
        return tool_choice
    if not isinstance(tool_choice, dict):
        return None
    if tool_choice.get("type") != "function":
        return tool_choice

    name = tool_choice.get("name")
    if not isinstance(name, str):
        function = tool_choice.get("function")
        name = function.get("name") if isinstance(function, dict) else None
    if isinstance(name, str) and name:
        return {"type": "function", "name": name}
    return tool_choice


def convert_response_format(response_format: Any) -> Optional[dict[str, Any]]:
    """Map a json_schema response_format onto ``text.format``."""
    if not isinstance(response_format, dict):
        return None
    if response_format.get("type") != "json_schema":
        return None
    schema = response_format.get("json_schema")
    return {
        "format": {
            "type": "json_schema",
            **(schema if isinstance(schema, dict) else {}),
        }
    }


def build_upstream_request(
    chat_request: ChatCompletionRequest, ids: Optional[IdGenerator] = None
) -> ResponseRequest:
    """Convert a Chat Completions request into one canonical upstream request.

    Args:
        chat_request: The parsed client request body
        ids: Id factories used for tool calls that arrive without an id

    Returns:
        Responses API request body
    """
    ids = ids or DEFAULT_IDS
    instructions, input_items = convert_messages(chat_request.get("messages"), ids)

    request: ResponseRequest = {
        "model": chat_request.get("model") or "",
        "input": input_items,
        "stream": bool(chat_request.get("stream")),
    }

    if instructions:
        request["instructions"] = instructions

    tools = convert_tools(chat_request.get("tools"))
    if tools:
        request["tools"] = tools

    tool_choice = convert_tool_choice(chat_request.get("tool_choice"))
    if tool_choice is not None:
        request["tool_choice"] = tool_choice

    # max_completion_tokens is checked last so it wins over max_tokens
    if chat_request.get("max_tokens") is not None:
        request["max_output_tokens"] = chat_request["max_tokens"]
    if chat_request.get("max_completion_tokens") is not None:
        request["max_output_tokens"] = chat_request["max_completion_tokens"]

    for key in ("temperature", "top_p", "stop"):
        if chat_request.get(key) is not None:
            request[key] = chat_request[key]

    effort = chat_request.get("reasoning_effort") or chat_request.get("reasoningEffort")
    if isinstance(effort, str) and effort.strip():
        request["reasoning"] = {"effort": effort.strip()}

    text_config = convert_response_format(chat_request.get("response_format"))
    if text_config:
        request["text"] = text_config

    logger.debug(
        "Translator: built upstream request with %d input items (instructions=%s)",
        len(input_items),
        bool(instructions),
    )
    return request


# =============================================================================
# Responses API → Chat Completions
# =============================================================================


def extract_text(response: Mapping[str, Any]) -> str:
    """Extract the assistant text from a Responses API object."""
    if isinstance(response.get("output_text"), str):
        return response["output_text"]

    output = response.get("output")
    if isinstance(output, list):
        parts: list[str] = []
        for item in output:
            if not isinstance(item, dict) or item.get("type") != "message":
                continue
            content = item.get("content")
            for part in content if isinstance(content, list) else []:
                if (
                    isinstance(part, dict)
                    and part.get("type") == "output_text"
                    and isinstance(part.get("text"), str)
                ):
                    parts.append(part["text"])
        if parts:
            return "".join(parts)
        return json.dumps(output, ensure_ascii=False)

    return json.dumps(response, ensure_ascii=False)


def item_call_id(item: Mapping[str, Any]) -> str:
    """Return an item's ``call_id`` (falling back to ``id``).

    The first present key decides; a value that is not a string counts as
    no id and yields ``""``.
    """
    call_id = item.get("call_id")
    if call_id is None:
        call_id = item.get("id")
    return call_id if isinstance(call_id, str) else ""


def extract_tool_calls(response: Mapping[str, Any]) -> list[ToolCall]:
    """Extract chat-style tool calls from ``function_call`` output items.

    Items are keyed by ``call_id`` (falling back to ``id``); the first item
    for a given id wins and later duplicates are dropped.
    """
    output = response.get("output")
    if not isinstance(output, list):
        return []

    tool_calls: list[ToolCall] = []
    seen: set[str] = set()
    for item in output:
        if not isinstance(item, dict) or item.get("type") != "function_call":
            continue
        call_id = item_call_id(item)
        if not call_id or call_id in seen:
            continue
        seen.add(call_id)
        tool_calls.append({
            "id": call_id,
            "type": "function",
            "function": {
                "name": item.get("name") if isinstance(item.get("name"), str) else "",
                "arguments": coerce_arguments(item.get("arguments")),
            },
        })
    return tool_calls


def _first_present(usage: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if usage.get(key) is not None:
            return usage[key]
    return 0


def convert_usage(usage: Optional[ResponseUsage]) -> Usage:
    """Convert Responses API usage to Chat Completions format.

    Args:
        usage: Responses API usage object (chat-style field names are
            accepted as a fallback)

    Returns:
        Chat Completions usage object
    """
    if not isinstance(usage, Mapping):
        usage = {}

    result: Usage = {
        "prompt_tokens": _first_present(usage, "input_tokens", "prompt_tokens"),
        "completion_tokens": _first_present(usage, "output_tokens", "completion_tokens"),
        "total_tokens": _first_present(usage, "total_tokens"),
    }

    input_details = usage.get("input_tokens_details")
    if isinstance(input_details, Mapping) and "cached_tokens" in input_details:
        result["prompt_tokens_details"] = {
            "cached_tokens": input_details.get("cached_tokens") or 0,
        }

    output_details = usage.get("output_tokens_details")
    if isinstance(output_details, Mapping) and "reasoning_tokens" in output_details:
        result["completion_tokens_details"] = {
            "reasoning_tokens": output_details.get("reasoning_tokens") or 0,
        }

    return result


def build_chat_response(
    response: ResponseObject,
    original_request: ChatCompletionRequest,
    ids: Optional[IdGenerator] = None,
) -> ChatCompletionResponse:
    """Convert a complete Responses API object into a chat completion.

    Args:
        response: The upstream (or synthesized) response object
        original_request: The client's chat completion request
        ids: Id factories used when upstream reports no id

    Returns:
        Chat Completions response body
    """
    ids = ids or DEFAULT_IDS
    text = extract_text(response)
    tool_calls = extract_tool_calls(response)

    message: dict[str, Any] = {
        "role": "assistant",
        "content": text or None,
    }
    if tool_calls:
        message["tool_calls"] = tool_calls

    created = response.get("created_at")
    if created is None:
        created = response.get("created")
    if created is None:
        created = int(time.time())

    model = original_request.get("model")
    if model is None:
        model = response.get("model")
    if model is None:
        model = "unknown"

    return {
        "id": response.get("id") or ids.chat_id(),
        "object": "chat.completion",
        "created": created,
        "model": model,
        "choices": [{
            "index": 0,
            "message": message,
            "logprobs": None,
            "finish_reason": "tool_calls" if tool_calls else "stop",
        }],
        "usage": convert_usage(response.get("usage")),
    }
