"""In-memory registry binding tool names to their definitions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import structlog

from sb_mcp.errors import DuplicateToolError, RegistryFrozenError, ToolNotFoundError
from sb_mcp.tools import ToolDefinition

logger = structlog.wrap_logger(logging.getLogger(__name__))


class ToolRegistry:
    """Registry of tools, populated at startup and read-only once frozen.

    The registry is intentionally free of transport details; the transport
    freezes it before the first request is read.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, ToolDefinition] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Whether registration is closed."""
        return self._frozen

    def freeze(self) -> None:
        """Close registration; later :meth:`register` calls fail."""
        if not self._frozen:
            self._frozen = True
            logger.debug("Tool registry frozen", tool_count=len(self._tools))

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool.

        Args:
            tool: Tool definition to register.

        Raises:
            RegistryFrozenError: If the registry already started serving.
            DuplicateToolError: If a tool with the same name is already registered.

        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{tool.name}': registry is frozen"
            )
        if tool.name in self._tools:
            raise DuplicateToolError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered tool", tool=tool.name)

    def register_tools(self, *tools: ToolDefinition) -> None:
        """Register multiple tools at once.

        Args:
            *tools: Collection of tool definitions to register.

        """
        for tool in tools:
            self.register(tool)

    def lookup(self, name: str) -> ToolDefinition:
        """Return the definition registered under ``name``.

        Raises:
            ToolNotFoundError: If the tool name is not registered.

        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def list(self) -> list[ToolDefinition]:
        """Return every registered definition in registration order."""
        return list(self._tools.values())

    def available_tools(self) -> list[str]:
        """List the names of registered tools.

        Returns:
            Sorted list of tool names.

        """
        return sorted(self._tools)

    def to_catalog(self) -> dict[str, dict[str, Any]]:
        """Produce a catalog for discovery.

        Returns:
            Mapping of tool names to their metadata.

        """
        return {name: tool.metadata() for name, tool in self._tools.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._tools)
