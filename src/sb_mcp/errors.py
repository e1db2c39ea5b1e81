"""Error types for the tool invocation protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, TypedDict

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MCPErrorPayload(TypedDict):
    """JSON-RPC error object sent to the host."""

    code: int
    message: str
    data: object | None


class MCPError(Exception):
    """Protocol-level failure that is reported as a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: object | None = None) -> None:
        """Create a protocol error with a JSON-friendly payload."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> MCPErrorPayload:
        """Return the JSON-RPC error object."""
        return {"code": self.code, "message": self.message, "data": self.data}


class ProtocolError(MCPError):
    """Malformed message or request the transport cannot serve."""


class ToolNotFoundError(MCPError, LookupError):
    """Raised when a tool name is not present in the registry."""

    def __init__(self, name: str) -> None:
        """Create the error for an unresolved tool name."""
        super().__init__(INVALID_PARAMS, f"Unknown tool: {name}", {"name": name})
        self.name = name


class DuplicateToolError(ValueError):
    """Raised when a tool name is registered twice."""


class RegistryFrozenError(RuntimeError):
    """Raised when registering tools after the registry started serving."""


@dataclass(frozen=True)
class Violation:
    """A single schema violation at ``path``."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaValidationError(ValueError):
    """Raised when arguments do not satisfy a tool's input schema.

    Attributes:
        violations: Every violated field, in the order they were found.

    """

    def __init__(self, violations: list[Violation], tool_name: str | None = None):
        self.violations = violations
        self.tool_name = tool_name
        target = f" for tool '{tool_name}'" if tool_name else ""
        details = "; ".join(str(violation) for violation in violations)
        super().__init__(f"Invalid arguments{target}: {details}")


def raise_protocol_error(
    code: int, message: str, data: object | None = None
) -> NoReturn:
    """Raise a :class:`ProtocolError` with a structured payload."""
    raise ProtocolError(code=code, message=message, data=data)
