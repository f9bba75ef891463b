"""
MCP Tools module for Memory Search MCP Server.

Contains the MCP tool handlers (list_tools and call_tool) bound to a
SearchService instance.
"""

import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import structlog
from mcp.server import Server
from mcp.types import (
    Resource,
    TextContent,
    Tool,
)

from .models import FieldType, SearchOptions, SearchResult, SearchStrategy
from .search import SearchService
from .utils import ContentValidationError, SearchServiceError, clamp_limit

logger = structlog.get_logger(__name__)

STRATEGY_NAMES = [s.value for s in SearchStrategy]
FIELD_NAMES = [f.value for f in FieldType]


def _text(output: str) -> list[TextContent]:
    return [TextContent(type="text", text=output)]


def _format_result(query: str, result: SearchResult) -> str:
    if not result.documents:
        return f"No memories found for query: '{query}'"

    output = f"Found {result.total_count} memories for '{query}' ({result.strategy}, {result.query_time_ms}ms)"
    if result.fallback:
        output += " [substring fallback]"
    output += ":\n\n"
    for hit in result.documents:
        memory = hit.memory
        output += f"**{memory.id}** ({memory.type}) score={hit.score:.4f} via {', '.join(hit.sources)}\n"
        output += f"  Importance: {memory.importance:.2f} | Accessed: {memory.access_count}\n"
        snippet = memory.content[:200].replace("\n", " ")
        output += f"  {snippet}{'...' if len(memory.content) > 200 else ''}\n\n"
    return output


def _options(arguments: dict[str, Any], default_limit: int) -> SearchOptions:
    fields = arguments.get("fields")
    return SearchOptions(
        strategy=arguments.get("strategy", SearchStrategy.HYBRID.value),
        limit=arguments.get("limit", default_limit),
        min_importance=arguments.get("min_importance", 0.0),
        fields=[FieldType(f) for f in fields] if fields else None,
    )


def _tool_definitions() -> list[Tool]:
    search_properties = {
        "query": {"type": "string", "description": "Search query"},
        "strategy": {
            "type": "string",
            "description": "Search strategy (default: hybrid)",
            "enum": STRATEGY_NAMES,
            "default": "hybrid",
        },
        "limit": {"type": "integer", "description": "Maximum number of results (default: 10)", "default": 10},
        "min_importance": {
            "type": "number",
            "description": "Only return memories with at least this importance (0-1)",
            "default": 0.0,
        },
    }
    return [
        Tool(
            name="memory_store",
            description="Store a new memory. Returns the new memory id.",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Text of the memory"},
                    "type": {"type": "string", "description": "Memory type (default: memory)", "default": "memory"},
                    "metadata": {
                        "type": "object",
                        "description": "Optional metadata; 'tags' is indexed as the tags field",
                    },
                },
                "required": ["content"],
            },
        ),
        Tool(
            name="memory_get",
            description="Read a memory by id.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "string", "description": "Memory id"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="memory_update",
            description="Update the content, type or metadata of a memory.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Memory id"},
                    "content": {"type": "string", "description": "New content"},
                    "type": {"type": "string", "description": "New type"},
                    "metadata": {"type": "object", "description": "Replacement metadata"},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="memory_delete",
            description="Delete a memory by id.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "string", "description": "Memory id"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="memory_search",
            description="Search memories with exact, fuzzy, semantic or hybrid (default) ranking.",
            inputSchema={
                "type": "object",
                "properties": {
                    **search_properties,
                    "fields": {
                        "type": "array",
                        "items": {"type": "string", "enum": FIELD_NAMES},
                        "description": "Restrict matching to these fields",
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="memory_multi_field_search",
            description="Search content, metadata and tags separately and combine field-weighted scores.",
            inputSchema={
                "type": "object",
                "properties": {
                    **search_properties,
                    "fields": {
                        "type": "array",
                        "items": {"type": "string", "enum": FIELD_NAMES},
                        "description": "Fields to search (default: all)",
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="memory_autocomplete",
            description="Complete a word prefix from indexed words, most frequent first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "prefix": {"type": "string", "description": "Word prefix"},
                    "limit": {"type": "integer", "description": "Maximum suggestions (default: 10)", "default": 10},
                },
                "required": ["prefix"],
            },
        ),
        Tool(
            name="memory_date_range",
            description="List memories created between two ISO-8601 timestamps, newest first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "start": {"type": "string", "description": "Start timestamp (ISO-8601)"},
                    "end": {"type": "string", "description": "End timestamp (ISO-8601)"},
                    "limit": {"type": "integer", "description": "Maximum results (default: 10)", "default": 10},
                    "min_importance": {"type": "number", "default": 0.0},
                },
                "required": ["start", "end"],
            },
        ),
        Tool(
            name="memory_similar",
            description="Find memories whose wording is similar to the given text.",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Text to compare against"},
                    "limit": {"type": "integer", "default": 5},
                    "threshold": {"type": "number", "description": "Minimum cosine similarity", "default": 0.7},
                },
                "required": ["content"],
            },
        ),
        Tool(
            name="memory_suggest",
            description="Suggest indexed words close to a possibly misspelled word.",
            inputSchema={
                "type": "object",
                "properties": {
                    "word": {"type": "string"},
                    "limit": {"type": "integer", "default": 5},
                },
                "required": ["word"],
            },
        ),
        Tool(
            name="memory_query_suggestions",
            description="Suggest completions for a partial query from past searches and frequent indexed words.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Partial query (default: empty)", "default": ""},
                    "limit": {"type": "integer", "description": "Maximum suggestions (default: 10)", "default": 10},
                },
            },
        ),
        Tool(
            name="memory_rebuild_index",
            description="Rebuild all search indexes from the stored memories.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="memory_stats",
            description="Index sizes, cache statistics and performance metrics.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


def make_tool_handler(service: SearchService) -> Callable[[str, dict[str, Any]], Awaitable[list[TextContent]]]:
    """Return the coroutine that dispatches a tool call to service."""
    store = service.store
    default_limit = service.settings.default_limit

    async def handle(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if name == "memory_store":
            memory_id = await store.add_memory(
                arguments.get("content", ""),
                arguments.get("type") or "memory",
                arguments.get("metadata") or {},
            )
            return _text(f"Memory stored: {memory_id}")

        elif name == "memory_get":
            memory = await store.get_memory(arguments.get("id", ""))
            if memory is None:
                return _text(f"Memory not found: '{arguments.get('id', '')}'")
            return _text(json.dumps(memory.model_dump(mode="json"), indent=2))

        elif name == "memory_update":
            memory_id = arguments.get("id", "")
            updated = await store.update_memory(
                memory_id,
                content=arguments.get("content"),
                type=arguments.get("type"),
                metadata=arguments.get("metadata"),
            )
            return _text(f"Memory updated: {memory_id}" if updated else f"Memory not found: '{memory_id}'")

        elif name == "memory_delete":
            memory_id = arguments.get("id", "")
            deleted = await store.delete_memory(memory_id)
            return _text(f"Memory deleted: {memory_id}" if deleted else f"Memory not found: '{memory_id}'")

        elif name == "memory_search":
            query = arguments.get("query", "")
            result = await service.search(query, _options(arguments, default_limit))
            return _text(_format_result(query, result))

        elif name == "memory_multi_field_search":
            query = arguments.get("query", "")
            options = _options({**arguments, "fields": None}, default_limit)
            fields = [FieldType(f) for f in arguments.get("fields") or []] or None
            result = await service.multi_field_search(query, fields, options)
            return _text(_format_result(query, result))

        elif name == "memory_autocomplete":
            prefix = arguments.get("prefix", "")
            words = await service.auto_complete(prefix, arguments.get("limit", 10))
            if not words:
                return _text(f"No completions for: '{prefix}'")
            return _text("\n".join(words))

        elif name == "memory_date_range":
            start = datetime.fromisoformat(arguments["start"])
            end = datetime.fromisoformat(arguments["end"])
            options = SearchOptions(
                limit=clamp_limit(arguments.get("limit"), default_limit, service.settings.max_limit),
                min_importance=arguments.get("min_importance", 0.0),
            )
            result = await service.search_by_date_range(start, end, options)
            return _text(_format_result(f"{arguments['start']} .. {arguments['end']}", result))

        elif name == "memory_similar":
            hits = await service.similar_memories(
                arguments.get("content", ""),
                arguments.get("limit", 5),
                arguments.get("threshold", 0.7),
            )
            if not hits:
                return _text("No similar memories found")
            output = f"Found {len(hits)} similar memories:\n\n"
            for hit in hits:
                output += f"- **{hit.memory.id}** similarity={hit.score:.3f}: {hit.memory.content[:120]}\n"
            return _text(output)

        elif name == "memory_suggest":
            word = arguments.get("word", "")
            suggestions = await service.suggest(word, arguments.get("limit", 5))
            if not suggestions:
                return _text(f"No suggestions for: '{word}'")
            return _text(", ".join(suggestions))

        elif name == "memory_query_suggestions":
            query = arguments.get("query", "")
            suggestions = await service.query_suggestions(query, arguments.get("limit", 10))
            if not suggestions:
                return _text(f"No query suggestions for: '{query}'")
            return _text("\n".join(suggestions))

        elif name == "memory_rebuild_index":
            result = await service.rebuild_indexes()
            return _text(f"Indexes rebuilt: {result.rebuilt} memories, {result.errors} errors")

        elif name == "memory_stats":
            return _text(json.dumps(service.stats(), indent=2, default=str))

        return _text(f"Unknown tool: {name}")

    async def call(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        try:
            return await handle(name, arguments or {})
        except (ContentValidationError, ValueError, KeyError) as e:
            return _text(f"Error: {e}")
        except SearchServiceError as e:
            logger.error("tool_failed", tool=name, error=str(e))
            return _text(f"Service error: {e}")

    return call


def build_server(service: SearchService) -> Server:
    """Create an MCP server whose tools operate on service."""
    server = Server("memory-search")
    handler = make_tool_handler(service)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return _tool_definitions()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        return await handler(name, arguments)

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        """List available resources."""
        return [
            Resource(
                uri="memory://stats",
                name="Memory Search Statistics",
                description="Index sizes, cache statistics and performance metrics",
                mimeType="application/json",
            ),
        ]

    @server.read_resource()
    async def read_resource(uri: Any) -> str:
        """Read a resource."""
        if str(uri) == "memory://stats":
            return json.dumps(service.stats(), indent=2, default=str)

        return json.dumps({"error": f"Unknown resource: {uri}"})

    return server
