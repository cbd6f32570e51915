"""Extraction contract for generator output.

Generators may hand back plain strings, LangChain messages, or provider
response objects; everything is reduced to text and then to the first JSON
object embedded in it.
"""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _text_of(item: Any) -> str | None:
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and isinstance(item.get("text"), str):
        return item["text"]
    return None


def _join_parts(items: list[Any]) -> str | None:
    parts = [text for text in (_text_of(item) for item in items) if text]
    return "\n".join(parts) if parts else None


def normalize_to_text(value: Any) -> str | None:
    """Reduce a generator response to text, or None when no text is present."""
    if isinstance(value, str):
        return value
    if value is None:
        return None

    # LangChain messages and other objects exposing .content
    content = getattr(value, "content", None)
    if content is not None and not isinstance(value, dict):
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return _join_parts(content)

    if not isinstance(value, dict):
        return None
    for key in ("finalResponse", "output_text", "text", "content"):
        if isinstance(value.get(key), str):
            return value[key]
    if isinstance(value.get("items"), list):
        joined = _join_parts(value["items"])
        if joined:
            return joined
    if isinstance(value.get("output"), list):
        return _join_parts([item for item in value["output"] if isinstance(item, str)])
    return None


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Parse the outermost ``{...}`` span of ``text``; None if absent or invalid."""
    if not text:
        return None
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
