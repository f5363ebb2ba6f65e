"""MCP server exposing the ``generate_image`` tool over stdio."""

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from app.config import Settings, settings
from src.core.backend_factory import BackendFactory
from src.tools.generate_image_tool import ImageToolServer

logger = logging.getLogger(__name__)

SERVER_NAME = "ideagram-mcp-server"
SERVER_VERSION = "0.1.0"


def create_tool_server(config: Optional[Settings] = None) -> ImageToolServer:
    """Create the tool server from settings.

    Raises:
        ConfigurationError: If the Ideogram API key is missing
    """
    config = config or settings
    config.validate_required_keys()

    backend = BackendFactory.create_backend(
        "ideogram",
        config.ideogram_api_key,
        output_dir=config.ideogram_output_dir,
        base_url=config.ideogram_base_url,
        timeout=config.request_timeout
    )
    logger.info(f"Initialized tool server with backend: {backend.name}")
    return ImageToolServer(backend)


def create_mcp_server(tool_server: ImageToolServer) -> Server:
    """Register the tool server's handlers on an MCP server.

    Tool calls run in a worker thread since generation blocks on HTTP.
    Failures raised by the tool server reach the client as MCP errors that
    carry the tool server's message.
    """
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return tool_server.list_tools()

    # Arguments are coerced leniently by the tool server, not schema-validated
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        return await asyncio.to_thread(tool_server.call_tool, name, arguments)

    return server


async def run(tool_server: ImageToolServer) -> None:
    """Serve MCP requests on stdin/stdout until the client disconnects."""
    server = create_mcp_server(tool_server)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Ideogram MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )
    tool_server = create_tool_server(settings)
    asyncio.run(run(tool_server))


if __name__ == "__main__":
    main()
