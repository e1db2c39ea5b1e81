"""sb_mcp package initialization."""

from sb_mcp.dispatcher import Dispatcher
from sb_mcp.envelope import (
    JsonContent,
    TextContent,
    ToolFailure,
    ToolResponse,
    ToolSuccess,
    failure,
    success,
)
from sb_mcp.errors import (
    DuplicateToolError,
    MCPError,
    SchemaValidationError,
    ToolNotFoundError,
)
from sb_mcp.registry import ToolRegistry
from sb_mcp.tools import ToolDefinition, ToolRequest, ping_tool
from sb_mcp.transport import StdioTransport

__all__ = [
    "Dispatcher",
    "DuplicateToolError",
    "JsonContent",
    "MCPError",
    "SchemaValidationError",
    "StdioTransport",
    "TextContent",
    "ToolDefinition",
    "ToolFailure",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolRequest",
    "ToolResponse",
    "ToolSuccess",
    "failure",
    "ping_tool",
    "success",
]
