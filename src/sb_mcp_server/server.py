"""Assemble the tool registry and dispatcher for the SB backend server."""

from __future__ import annotations

from typing import Any

from sb_mcp.dispatcher import Dispatcher
from sb_mcp.registry import ToolRegistry
from sb_mcp.transport import StdioTransport
from sb_mcp_server.config import Settings
from sb_mcp_server.tools import build_tools

SERVER_VERSION = "1.0.0"
INSTRUCTIONS = (
    "Backend utilities (database, GitLab, Jira, Instana, Kubernetes, HTTP, "
    "shell and file system) exposed over the Model Context Protocol."
)


def build_registry(settings: Settings, **tool_options: Any) -> ToolRegistry:
    """Register every tool; the registry is frozen by whichever transport serves it."""
    registry = ToolRegistry()
    registry.register_tools(*build_tools(settings, **tool_options))
    return registry


def build_dispatcher(registry: ToolRegistry, settings: Settings) -> Dispatcher:
    """Create a dispatcher honoring the configured per-call timeout."""
    return Dispatcher(registry, call_timeout=settings.call_timeout_seconds)


def build_stdio_transport(
    registry: ToolRegistry, dispatcher: Dispatcher, settings: Settings
) -> StdioTransport:
    """Create the stdio transport for ``registry``."""
    return StdioTransport(
        registry,
        dispatcher,
        server_name=settings.server_name,
        server_version=SERVER_VERSION,
        instructions=INSTRUCTIONS,
        max_in_flight=settings.max_in_flight,
    )
