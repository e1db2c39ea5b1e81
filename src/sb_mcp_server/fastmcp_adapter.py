"""Adapters for exposing the tool registry via FastMCP (HTTP and SSE)."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent

from sb_mcp.dispatcher import Dispatcher
from sb_mcp.registry import ToolRegistry
from sb_mcp.tools import ToolDefinition, ToolRequest
from sb_mcp_server.server import INSTRUCTIONS


class ToolDefinitionAdapter(Tool):
    """Expose a :class:`ToolDefinition` as a FastMCP tool."""

    def __init__(self, definition: ToolDefinition, dispatcher: Dispatcher) -> None:
        """Create a FastMCP tool wrapper for the provided definition."""
        super().__init__(
            name=definition.name,
            description=definition.description,
            parameters=definition.metadata()["inputSchema"],
            tags=set(),
        )
        self._definition = definition
        self._dispatcher = dispatcher

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        """Dispatch through the shared pipeline so envelopes stay uniform."""
        response = await self._dispatcher.dispatch(
            ToolRequest(tool_name=self._definition.name, arguments=arguments)
        )
        if response.is_error:
            raise ToolError(response.text)
        return ToolResult(
            content=[
                TextContent(type="text", text=block.text) for block in response.content
            ]
        )


def to_fastmcp_tools(registry: ToolRegistry, dispatcher: Dispatcher) -> list[Tool]:
    """Convert registered tool definitions into FastMCP-compatible tools."""
    return [ToolDefinitionAdapter(definition, dispatcher) for definition in registry.list()]


def build_fastmcp_app(
    registry: ToolRegistry, dispatcher: Dispatcher, name: str = "sb-backend-server"
) -> FastMCP:
    """Create a FastMCP server instance with every registered tool."""
    app = FastMCP(name=name, instructions=INSTRUCTIONS)
    for tool in to_fastmcp_tools(registry, dispatcher):
        app.add_tool(tool)
    registry.freeze()
    return app
