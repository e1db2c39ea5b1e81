"""Content blocks, handler results and the response envelope.

Handlers report their outcome with :class:`ToolSuccess` or :class:`ToolFailure`.
The dispatcher turns either one, a validation failure or a raised exception
into a :class:`ToolResponse`, the only shape written back for a resolved tool.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class TextContent:
    """Plain text output."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class JsonContent:
    """Structured output, rendered as indented JSON text on the wire."""

    data: Any

    @property
    def text(self) -> str:
        """Return the JSON rendering of ``data``."""
        return json.dumps(self.data, indent=2, default=str)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return {"type": "text", "text": self.text}


ContentBlock = Union[TextContent, JsonContent]


@dataclass(frozen=True)
class ToolSuccess:
    """Successful handler outcome carrying ordered content blocks."""

    content: tuple[ContentBlock, ...]


@dataclass(frozen=True)
class ToolFailure:
    """Handled failure reported back to the host as an error envelope."""

    message: str


ToolResult = Union[ToolSuccess, ToolFailure]


def success(*blocks: str | ContentBlock) -> ToolSuccess:
    """Build a success result; strings become :class:`TextContent`."""
    return ToolSuccess(
        tuple(TextContent(block) if isinstance(block, str) else block for block in blocks)
    )


def failure(message: str) -> ToolFailure:
    """Build a failure result."""
    return ToolFailure(message)


@dataclass
class ToolResponse:
    """Envelope returned for every call of a registered tool.

    Attributes:
        content: Ordered content blocks.
        is_error: Whether the call failed (validation, handler or timeout).

    """

    content: list[ContentBlock] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def ok(cls, content: list[ContentBlock] | tuple[ContentBlock, ...]) -> ToolResponse:
        """Wrap successful content."""
        return cls(content=list(content), is_error=False)

    @classmethod
    def error(cls, message: str) -> ToolResponse:
        """Wrap a failure description."""
        return cls(content=[TextContent(message)], is_error=True)

    @property
    def text(self) -> str:
        """Concatenate the text of every block."""
        return "\n".join(block.text for block in self.content)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return {
            "content": [block.to_dict() for block in self.content],
            "isError": self.is_error,
        }

    def to_json(self) -> str:
        """Serialize the envelope to JSON.

        Returns:
            JSON representation of the response.

        """
        return json.dumps(self.to_dict())
