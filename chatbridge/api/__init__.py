"""API module for the bridge."""

from .errors import openai_error_response
from .routes import chat_completions, health, list_models, responses_passthrough

__all__ = [
    "chat_completions",
    "health",
    "list_models",
    "openai_error_response",
    "responses_passthrough",
]
