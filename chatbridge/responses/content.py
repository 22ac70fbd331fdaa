"""Message content normalization.

Chat clients send ``content`` as a plain string, a list of typed parts, or
occasionally a bare ``{"text": ...}`` object. These helpers flatten that into
either plain text or Responses API input parts. Neither function raises.
"""

from __future__ import annotations

import logging
from typing import Any

from ..types.chat import ContentPart

logger = logging.getLogger("chatbridge")

TEXT_PART_TYPES = frozenset({"text", "input_text", "output_text"})
IMAGE_PART_TYPES = frozenset({"image_url", "input_image"})


def normalize_content(content: Any) -> str:
    """Flatten message content into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for part in content:
            if isinstance(part, str):
                chunks.append(part)
                continue
            if not isinstance(part, dict):
                continue
            # Unknown part types still count when they carry text
            text = part.get("text")
            if isinstance(text, str):
                chunks.append(text)
        return "".join(chunks)
    if isinstance(content, dict) and isinstance(content.get("text"), str):
        return content["text"]
    return str(content)


def _resolve_image_url(part: ContentPart) -> str:
    image_url = part.get("image_url")
    if isinstance(image_url, str):
        return image_url
    if isinstance(image_url, dict) and isinstance(image_url.get("url"), str):
        return image_url["url"]
    return ""


def to_upstream_parts(content: Any) -> str | list[dict[str, Any]]:
    """Convert message content into Responses API input content.

    Strings pass through unchanged. Lists become ``input_text`` /
    ``input_image`` parts, with unknown dict parts kept as-is. An empty result
    collapses to ``""`` so callers never emit an empty part list.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return normalize_content(content)

    parts: list[dict[str, Any]] = []
    for part in content:
        if part is None:
            continue
        if isinstance(part, str):
            parts.append({"type": "input_text", "text": part})
            continue
        if not isinstance(part, dict):
            continue

        part_type = part.get("type")
        if part_type in TEXT_PART_TYPES:
            if isinstance(part.get("text"), str):
                parts.append({"type": "input_text", "text": part["text"]})
        elif part_type in IMAGE_PART_TYPES:
            url = _resolve_image_url(part)
            if url:
                parts.append({"type": "input_image", "image_url": url})
            else:
                logger.debug("Content: dropping image part without a url")
        else:
            parts.append(part)

    return parts if parts else ""
