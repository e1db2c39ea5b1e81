"""Tool definitions and the built-in liveness tool."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Union

from sb_mcp.envelope import ToolResult, success
from sb_mcp.schema import Record, Validator, record, to_json_schema

ToolHandler = Callable[[Dict[str, Any]], Union[ToolResult, Awaitable[ToolResult]]]

PING_TOOL_NAME = "sb_backend_ping"


@dataclass(frozen=True)
class ToolDefinition:
    """Description of a tool that can be registered with the server.

    Attributes:
        name: Unique name of the tool.
        description: Human-readable description of the tool purpose.
        input_schema: Record descriptor used to validate input arguments.
        handler: Callable (sync or async) that executes the tool logic.
    """

    name: str
    description: str
    input_schema: Record
    handler: ToolHandler
    validator: Validator = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "validator", Validator(self.input_schema, self.name))

    def validate(self, arguments: Any) -> Dict[str, Any]:
        """Validate and default incoming tool arguments.

        Args:
            arguments: Raw arguments provided by the host.

        Raises:
            SchemaValidationError: If any field violates the schema.

        Returns:
            Validated argument dictionary.
        """

        return self.validator.validate(arguments)

    def metadata(self) -> Dict[str, Any]:
        """Return a discovery-friendly description of the tool."""

        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": to_json_schema(self.input_schema),
        }


@dataclass(frozen=True)
class ToolRequest:
    """A single invocation request received from the host."""

    tool_name: str
    arguments: Any = None


def ping_tool(name: str = PING_TOOL_NAME) -> ToolDefinition:
    """Create the liveness tool.

    Returns:
        ToolDefinition that always answers ``pong``.
    """

    def handler(_: Dict[str, Any]) -> ToolResult:
        """Return a fixed acknowledgment."""

        return success("pong")

    return ToolDefinition(
        name=name,
        description="A simple ping tool to check if the server is running.",
        input_schema=record(),
        handler=handler,
    )
