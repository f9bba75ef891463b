"""
Utility functions for Memory Search MCP Server.

Contains exceptions, validation utilities, search deadlines and importance scoring.
"""

import time
from collections.abc import Callable
from typing import Any

IMPORTANT_WORDS = ("remember", "important", "critical", "key", "vital")


# ============== Exceptions ==============

class SearchServiceError(Exception):
    """Raised when the search path and its substring fallback both fail."""
    pass


class SearchDeadlineExceeded(Exception):
    """Raised when a search strategy runs past its deadline."""
    pass


class ContentValidationError(Exception):
    """Raised when content validation fails."""
    pass


# ============== Deadlines ==============

class Deadline:
    """Wall-clock budget checked cooperatively by long index scans."""

    def __init__(self, budget_ms: float | None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.budget_ms = budget_ms
        self._expires_at = None if budget_ms is None else clock() + budget_ms / 1000

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() > self._expires_at

    def check(self) -> None:
        """Raise SearchDeadlineExceeded if the budget is spent."""
        if self.expired:
            raise SearchDeadlineExceeded(f"search exceeded {self.budget_ms}ms deadline")


# ============== Validation ==============

def validate_content_size(content: str, max_size: int) -> str:
    """Validate content size.

    Args:
        content: The content to validate
        max_size: Maximum allowed size in bytes

    Returns:
        The validated content

    Raises:
        ContentValidationError: If the content is empty or exceeds size limits
    """
    if not content or not content.strip():
        raise ContentValidationError("Content cannot be empty")

    content_bytes = len(content.encode('utf-8'))

    if content_bytes > max_size:
        max_mb = max_size / (1024 * 1024)
        actual_mb = content_bytes / (1024 * 1024)
        raise ContentValidationError(
            f"Content size ({actual_mb:.2f}MB) exceeds maximum allowed size ({max_mb}MB)"
        )

    return content


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Coerce a caller-supplied result limit into [1, maximum]."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


# ============== Scoring ==============

def calculate_importance(content: str, metadata: dict[str, Any]) -> float:
    """Heuristic importance score in [0, 1] for a new memory."""
    score = 0.5

    # Length bonus
    if len(content) > 100:
        score += 0.1
    if len(content) > 500:
        score += 0.1

    # Metadata signals
    if metadata.get("priority") == "high":
        score += 0.2
    tags = metadata.get("tags") or []
    if isinstance(tags, list) and "important" in tags:
        score += 0.1
    if metadata.get("source") == "user":
        score += 0.1

    content_lower = content.lower()
    score += 0.05 * sum(1 for word in IMPORTANT_WORDS if word in content_lower)

    return min(1.0, max(0.0, score))
