"""
Record store module for Memory Search MCP Server.

Contains the MemoryStore class holding memory records in memory, persisted as
a JSON file, and notifying index listeners of content changes.
"""

import json
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import aiofiles
import structlog

from .models import IndexResult, Memory
from .utils import calculate_importance, validate_content_size

logger = structlog.get_logger(__name__)


class IndexListener(Protocol):
    """Receives document lifecycle events from the store."""

    async def on_document_indexed(self, document_id: str, content: str, metadata: dict[str, Any]) -> IndexResult: ...

    async def on_document_removed(self, document_id: str) -> None: ...


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MemoryStore:
    """In-memory store of memory records with optional JSON persistence.

    Every write is saved to ``data_path`` when autosave is on. Reads bump the
    access count but are only persisted by the next write or save().
    """

    def __init__(self, data_path: Path | None = None, max_content_size: int = 1024 * 1024, autosave: bool = True):
        self.data_path = data_path
        self.max_content_size = max_content_size
        self.autosave = autosave
        self._memories: dict[str, Memory] = {}
        self._listeners: list[IndexListener] = []

    def __len__(self) -> int:
        return len(self._memories)

    def subscribe(self, listener: IndexListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: IndexListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ============== Persistence ==============

    async def load(self) -> int:
        """Load records from data_path, replacing the in-memory set."""
        if self.data_path is None or not self.data_path.exists():
            return 0

        start_time = time.time()
        async with aiofiles.open(self.data_path, encoding="utf-8") as f:
            raw = json.loads(await f.read() or "{}")

        memories: dict[str, Memory] = {}
        for item in raw.get("memories", []):
            try:
                memory = Memory.model_validate(item)
            except ValueError as e:
                logger.warning("memory_load_skipped", id=item.get("id"), error=str(e))
                continue
            memories[memory.id] = memory

        self._memories = memories
        logger.info(
            "store_loaded",
            path=str(self.data_path),
            memory_count=len(memories),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return len(memories)

    async def save(self) -> None:
        if self.data_path is None:
            return

        payload = {"memories": [m.model_dump(mode="json") for m in self._memories.values()]}
        self.data_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.data_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload, indent=2))

    async def _persist(self) -> None:
        if self.autosave:
            await self.save()

    # ============== Listener notification ==============

    async def _notify_indexed(self, memory: Memory) -> None:
        for listener in self._listeners:
            result = await listener.on_document_indexed(memory.id, memory.content, memory.metadata)
            if not result.ok:
                # The record stays stored and retrievable even when indexing fails
                logger.warning("index_failed", id=memory.id, kind=result.error.value, detail=result.detail)

    async def _notify_removed(self, memory_id: str) -> None:
        for listener in self._listeners:
            await listener.on_document_removed(memory_id)

    # ============== CRUD ==============

    async def add_memory(self, content: str, type: str = "memory", metadata: dict[str, Any] | None = None) -> str:
        """Store a new memory and return its id.

        Raises:
            ContentValidationError: If the content is empty or too large
        """
        validate_content_size(content, self.max_content_size)
        metadata = metadata or {}

        memory = Memory(
            id=str(uuid.uuid4()),
            content=content,
            type=type,
            metadata=metadata,
            importance=calculate_importance(content, metadata),
            access_count=1,
        )
        self._memories[memory.id] = memory

        await self._notify_indexed(memory)
        await self._persist()
        logger.info("memory_added", id=memory.id, importance=memory.importance)
        return memory.id

    async def get_memory(self, memory_id: str) -> Memory | None:
        """Return a memory and record the access."""
        memory = self._memories.get(memory_id)
        if memory is None:
            return None
        memory.access_count += 1
        memory.last_accessed = datetime.now(timezone.utc)
        return memory

    async def update_memory(
        self,
        memory_id: str,
        content: str | None = None,
        type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Update fields of a memory. Returns False if it does not exist."""
        memory = self._memories.get(memory_id)
        if memory is None:
            return False

        if content is not None:
            validate_content_size(content, self.max_content_size)

        reindex = False
        if content is not None and content != memory.content:
            memory.content = content
            reindex = True
        if metadata is not None and metadata != memory.metadata:
            memory.metadata = metadata
            reindex = True
        if type is not None:
            memory.type = type
        memory.updated_at = datetime.now(timezone.utc)

        if reindex:
            await self._notify_indexed(memory)
        await self._persist()
        logger.info("memory_updated", id=memory_id, reindexed=reindex)
        return True

    async def delete_memory(self, memory_id: str) -> bool:
        """Delete a memory. Returns False if it does not exist."""
        if self._memories.pop(memory_id, None) is None:
            return False

        await self._notify_removed(memory_id)
        await self._persist()
        logger.info("memory_deleted", id=memory_id)
        return True

    # ============== Queries ==============

    def fetch_by_ids(self, memory_ids: list[str]) -> list[Memory]:
        """Records for the given ids, in the given order, skipping unknown ids."""
        return [self._memories[i] for i in memory_ids if i in self._memories]

    def document_importance(self, memory_id: str) -> float | None:
        memory = self._memories.get(memory_id)
        return None if memory is None else memory.importance

    def document_access_count(self, memory_id: str) -> int:
        memory = self._memories.get(memory_id)
        return 0 if memory is None else memory.access_count

    def all_memories(self) -> list[Memory]:
        return list(self._memories.values())

    def find_by_date_range(self, start: datetime, end: datetime, limit: int | None = None) -> list[Memory]:
        """Memories created within [start, end], newest first."""
        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            raise ValueError("start must not be after end")

        matches = [m for m in self._memories.values() if start <= _as_utc(m.created_at) <= end]
        matches.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        return matches if limit is None else matches[:limit]
