"""Request variants for upstream dialect probing.

Responses API implementations disagree on a few field spellings. Rather than
detecting the dialect up front, the bridge builds a short ordered list of
equivalent request bodies and lets the dispatcher walk it until one is
accepted. The canonical request is always tried first.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

logger = logging.getLogger("chatbridge")


def _rename_max_tokens(request: dict[str, Any]) -> dict[str, Any]:
    variant = dict(request)
    variant["max_tokens"] = variant.pop("max_output_tokens")
    return variant


def _dedupe(variants: list[dict[str, Any]]) -> list[dict[str, Any]]:
    unique: list[dict[str, Any]] = []
    for variant in variants:
        if variant not in unique:
            unique.append(variant)
    return unique


def generate_variants(base: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Expand a canonical upstream request into ordered dialect variants.

    Order:
        0. the request unchanged
        1. ``max_output_tokens`` renamed to ``max_tokens``
        2. ``instructions`` inlined as a leading developer message, then the
           same with the ``max_tokens`` rename
        3. ``reasoning.effort`` flattened to ``reasoning_effort``, then the
           effort hint dropped entirely

    Structurally equal variants are collapsed, keeping the first.
    """
    canonical = dict(base)
    variants: list[dict[str, Any]] = [canonical]
    has_max_tokens = canonical.get("max_output_tokens") is not None

    if has_max_tokens:
        variants.append(_rename_max_tokens(canonical))

    instructions = canonical.get("instructions")
    if (
        isinstance(instructions, str)
        and instructions.strip()
        and isinstance(canonical.get("input"), list)
    ):
        inlined = dict(canonical)
        del inlined["instructions"]
        inlined["input"] = [
            {
                "role": "developer",
                "content": [{"type": "input_text", "text": instructions}],
            },
            *canonical["input"],
        ]
        variants.append(inlined)
        if has_max_tokens:
            variants.append(_rename_max_tokens(inlined))

    reasoning = canonical.get("reasoning")
    if isinstance(reasoning, dict) and reasoning.get("effort"):
        flat = dict(canonical)
        del flat["reasoning"]
        flat["reasoning_effort"] = reasoning["effort"]
        variants.append(flat)

        stripped = dict(canonical)
        stripped.pop("reasoning", None)
        stripped.pop("reasoning_effort", None)
        variants.append(stripped)

    unique = _dedupe(variants)
    logger.debug("Variants: generated %d request variants", len(unique))
    return unique
