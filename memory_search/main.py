"""
Main entry point for Memory Search MCP Server.

This module provides the main() function and server initialization.
"""

import asyncio

from mcp.server.stdio import stdio_server

from .config import Settings
from .logging import configure_logging
from .search import SearchService
from .store import MemoryStore
from .tools import build_server


def main():
    """Main entry point."""
    settings = Settings()
    configure_logging(settings.log_level)

    async def run():
        store = MemoryStore(settings.data_path, max_content_size=settings.max_content_size)
        service = SearchService(store, settings)
        await service.init()
        server = build_server(service)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            await service.shutdown()

    asyncio.run(run())


if __name__ == "__main__":
    main()
