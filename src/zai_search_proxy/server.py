"""
Z.AI MCP proxy server.

Exposes Z.AI Web Search Prime as a single MCP tool over stdio, so it can be
registered with any MCP client as a local command:

    zai-search-proxy --api-key=YOUR_API_KEY
"""
import logging
import os
import signal
import sys
from typing import Sequence

import anyio
import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool
from pydantic import ValidationError

from zai_search_proxy.formatting import get_formatter
from zai_search_proxy.session import CLIENT_VERSION, ZaiSession
from zai_search_proxy.settings import Settings, load_settings
from zai_search_proxy.tools import SearchTool

logger = logging.getLogger(__name__)

SERVER_NAME = "zai-search-proxy"


def build_server(tool: SearchTool) -> Server:
    mcp_app = Server(SERVER_NAME, version=CLIENT_VERSION)

    @mcp_app.list_tools()
    async def list_tools() -> list[Tool]:
        return [tool.definition()]

    @mcp_app.call_tool()
    async def call_tool(name: str, arguments: dict) -> CallToolResult:
        if name != tool.name:
            raise ValueError(f"Unknown tool: {name}")
        return await tool.call(arguments)

    return mcp_app


async def close_session(session: ZaiSession, timeout: float) -> None:
    if session.session_id:
        logger.info("Closing Z.AI session...")
    with anyio.move_on_after(timeout, shield=True):
        await session.close()


async def _close_on_signal(session: ZaiSession, timeout: float) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            await close_session(session, timeout)
            # The stdio reader blocks in a worker thread that cancellation cannot reach
            logging.shutdown()
            os._exit(0)


async def serve(settings: Settings) -> None:
    timeout = httpx.Timeout(
        settings.request_timeout, connect=min(settings.request_timeout, 10.0)
    )
    async with httpx.AsyncClient(timeout=timeout) as client:
        session = ZaiSession(
            settings.zai_api_key,
            settings.zai_api_url,
            protocol_version=settings.zai_protocol_version,
            client=client,
        )
        mcp_app = build_server(SearchTool(session, get_formatter(settings.output_format)))
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(_close_on_signal, session, settings.close_timeout)
                async with stdio_server() as (read_stream, write_stream):
                    logger.info(
                        "Z.AI MCP Proxy Server started  output_format=%s",
                        settings.output_format,
                    )
                    await mcp_app.run(
                        read_stream, write_stream, mcp_app.create_initialization_options()
                    )
                tg.cancel_scope.cancel()
        finally:
            # No-op when the signal path already tore the session down
            await close_session(session, settings.close_timeout)


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings(argv)
    except ValidationError as e:
        if any(err["loc"] == ("zai_api_key",) for err in e.errors()):
            logger.error("Error: Missing Z.AI API key")
            logger.error("Use --api-key=YOUR_API_KEY or set ZAI_API_KEY environment variable")
        else:
            logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)
    logger.info("Starting Z.AI MCP Proxy Server...")

    try:
        anyio.run(serve, settings)
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.critical("Server error", exc_info=True)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
