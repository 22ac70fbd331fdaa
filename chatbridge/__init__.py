"""Chat Completions to Responses API bridge."""

__version__ = "0.1.0"
