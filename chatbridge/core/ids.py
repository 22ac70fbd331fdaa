"""Identifier generation for chat completions, responses and tool calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from uuid import uuid4


def generate_chat_id() -> str:
    """Generate a unique chat completion ID."""
    return f"chatcmpl-{uuid4().hex}"


def generate_response_id() -> str:
    """Generate a unique response ID."""
    return f"resp_{uuid4().hex[:32]}"


def generate_call_id() -> str:
    """Generate a unique tool call ID."""
    return f"call_{uuid4().hex}"


@dataclass(frozen=True)
class IdGenerator:
    """Bundle of id factories handed to the translators.

    The defaults draw from uuid4. Tests pass deterministic callables.
    """

    chat_id: Callable[[], str] = generate_chat_id
    response_id: Callable[[], str] = generate_response_id
    call_id: Callable[[], str] = generate_call_id


DEFAULT_IDS = IdGenerator()
