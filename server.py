"""Cliniko MCP Server: practice-management tools and resources over stdio.

Exposes the Cliniko REST API (patients, appointments, invoices, billing,
reference data) to AI agents via the Model Context Protocol, plus batch
tools that seed and clean up synthetic test data.

Run:
    python server.py              # STDIO mode (Claude Desktop)
"""

import asyncio
import logging
import sys

import mcp.types as types
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from api_client import ClinikoClient
from config import CLINIKO_API_KEY, LOG_LEVEL
from handlers import build_registry
from registry import Dispatcher, ResourceSpec

SERVER_NAME = "cliniko-mcp-server"
SERVER_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging (stderr; stdout carries the MCP stream)
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("cliniko-mcp")


def resource_name(spec: ResourceSpec) -> str:
    return spec.uri_template.split("://", 1)[0]


def build_server(dispatcher: Dispatcher) -> Server:
    """Bind a dispatcher to the MCP protocol handlers."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=tool["name"], description=tool["description"], inputSchema=tool["input_schema"])
            for tool in dispatcher.list_tools()
        ]

    # Arguments are validated by the dispatcher against each tool's model.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict):
        result = await dispatcher.call_tool(name, arguments)
        content = [types.TextContent(type="text", text=block["text"]) for block in result.content]
        if isinstance(result.data, dict):
            return content, result.data
        return content

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [
            types.Resource(
                uri=spec.uri_template,
                name=resource_name(spec),
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in dispatcher.list_resources()
        ]

    @server.list_resource_templates()
    async def list_resource_templates() -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=spec.uri_template,
                name=resource_name(spec),
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in dispatcher.list_resource_templates()
        ]

    @server.read_resource()
    async def read_resource(uri) -> list[ReadResourceContents]:
        contents = await dispatcher.read_resource(str(uri))
        return [ReadResourceContents(content=contents.text, mime_type=contents.mime_type)]

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return []

    return server


async def main() -> None:
    if not CLINIKO_API_KEY:
        sys.exit(1)

    client = ClinikoClient(CLINIKO_API_KEY)
    dispatcher = Dispatcher(build_registry(client))
    server = build_server(dispatcher)
    logger.info("Cliniko MCP server starting with %d tools", len(dispatcher.list_tools()))

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
