"""API routes for the bridge."""

from .chat import chat_completions
from .health import health
from .passthrough import list_models, responses_passthrough

__all__ = [
    "chat_completions",
    "health",
    "list_models",
    "responses_passthrough",
]
