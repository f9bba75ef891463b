"""
Tokenizer for Memory Search MCP Server.

Normalizes raw text into index terms and splits a memory into indexed fields.
"""

import re
from typing import Any

from .models import FieldType

NON_WORD_PATTERN = re.compile(r'\W+')
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> list[str]:
    """Lower-case text and split it into index terms.

    Non-word characters act as separators and tokens shorter than three
    characters are dropped. Re-tokenizing the joined output is a no-op.
    """
    if not text:
        return []
    normalized = NON_WORD_PATTERN.sub(" ", text.lower())
    return [token for token in normalized.split() if len(token) >= MIN_TOKEN_LENGTH]


def _flatten(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, dict):
        parts: list[str] = []
        for item in value.values():
            parts.extend(_flatten(item))
        return parts
    if isinstance(value, (list, tuple, set)):
        parts = []
        for item in value:
            parts.extend(_flatten(item))
        return parts
    return [str(value)]


def field_texts(content: str, metadata: dict[str, Any] | None) -> dict[FieldType, str]:
    """Split a memory into the text indexed for each field.

    Tags come from ``metadata["tags"]``; every other metadata value is
    flattened into the metadata field.
    """
    metadata = metadata or {}
    tags = metadata.get("tags") or []
    other = {key: value for key, value in metadata.items() if key != "tags"}
    return {
        FieldType.CONTENT: content or "",
        FieldType.METADATA: " ".join(_flatten(other)),
        FieldType.TAGS: " ".join(_flatten(tags)),
    }
