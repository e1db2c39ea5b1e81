"""Model Context Protocol server for SB backend tooling."""

from sb_mcp_server.config import Settings, get_settings
from sb_mcp_server.server import SERVER_VERSION, build_dispatcher, build_registry
from sb_mcp_server.tools import build_tools

__all__ = [
    "SERVER_VERSION",
    "Settings",
    "build_dispatcher",
    "build_registry",
    "build_tools",
    "get_settings",
]
