"""Input schema descriptors and the validator that interprets them.

A tool declares its arguments as a small recursive descriptor (primitive,
list, string-keyed map, enumerated strings or a record of fields). The
descriptor is rendered as JSON Schema for discovery and compiled once into a
pydantic model for validation, so no tool carries bespoke validation code.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field as dataclass_field
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field as PydanticField,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    create_model,
)
from pydantic_core import PydanticCustomError

from sb_mcp.errors import SchemaValidationError, Violation

PrimitiveKind = Literal["string", "integer", "number", "boolean", "any"]


@dataclass(frozen=True)
class Primitive:
    """A scalar JSON value."""

    kind: PrimitiveKind


@dataclass(frozen=True)
class ListOf:
    """An ordered list whose items all match ``item``."""

    item: SchemaNode


@dataclass(frozen=True)
class MapOf:
    """A mapping from string keys to values matching ``value``."""

    value: SchemaNode


@dataclass(frozen=True)
class EnumOf:
    """A string restricted to a fixed set of values."""

    values: tuple[str, ...]


@dataclass(frozen=True)
class Field:
    """A named slot in a :class:`Record`.

    Attributes:
        node: Shape of the value.
        required: Whether the caller must supply the value.
        default: Value substituted when an optional field is absent or null.
        description: Human-readable hint shown to the host during discovery.

    """

    node: SchemaNode
    required: bool = True
    default: Any = None
    description: str = ""


@dataclass(frozen=True)
class Record:
    """An object with named fields. Unknown keys are ignored."""

    fields: Mapping[str, Field] = dataclass_field(default_factory=dict)


SchemaNode = Union[Primitive, ListOf, MapOf, EnumOf, Record]


def string() -> Primitive:
    """Describe a string value."""
    return Primitive("string")


def integer() -> Primitive:
    """Describe an integer value."""
    return Primitive("integer")


def number() -> Primitive:
    """Describe an integer or floating point value."""
    return Primitive("number")


def boolean() -> Primitive:
    """Describe a boolean value."""
    return Primitive("boolean")


def any_value() -> Primitive:
    """Describe an unconstrained JSON value."""
    return Primitive("any")


def list_of(item: SchemaNode) -> ListOf:
    """Describe a list of ``item`` values."""
    return ListOf(item)


def map_of(value: SchemaNode | None = None) -> MapOf:
    """Describe a string-keyed map, string-valued unless ``value`` is given."""
    return MapOf(value if value is not None else string())


def enum(*values: str) -> EnumOf:
    """Describe a string limited to ``values``."""
    if not values:
        raise ValueError("enum() requires at least one value")
    return EnumOf(tuple(values))


def field(node: SchemaNode, description: str = "") -> Field:
    """Declare a required field."""
    return Field(node=node, required=True, description=description)


def optional(node: SchemaNode, default: Any = None, description: str = "") -> Field:
    """Declare an optional field with an optional default."""
    return Field(node=node, required=False, default=default, description=description)


def record(**fields: Field | SchemaNode) -> Record:
    """Build a record; bare nodes are treated as required fields."""
    return Record(
        {
            name: spec if isinstance(spec, Field) else Field(node=spec)
            for name, spec in fields.items()
        }
    )


def to_json_schema(node: SchemaNode) -> dict[str, Any]:
    """Render a descriptor as a JSON Schema document."""
    if isinstance(node, Primitive):
        return {} if node.kind == "any" else {"type": node.kind}
    if isinstance(node, EnumOf):
        return {"type": "string", "enum": list(node.values)}
    if isinstance(node, ListOf):
        return {"type": "array", "items": to_json_schema(node.item)}
    if isinstance(node, MapOf):
        return {"type": "object", "additionalProperties": to_json_schema(node.value)}

    properties: dict[str, Any] = {}
    required: list[str] = []
    for name, spec in node.fields.items():
        rendered = to_json_schema(spec.node)
        if spec.description:
            rendered["description"] = spec.description
        if spec.required:
            required.append(name)
        elif spec.default is not None:
            rendered["default"] = spec.default
        properties[name] = rendered
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _require_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PydanticCustomError("number_type", "Input should be a valid number")
    return value


_PRIMITIVES: dict[str, Any] = {
    "string": StrictStr,
    "integer": StrictInt,
    "number": Annotated[float, BeforeValidator(_require_number)],
    "boolean": StrictBool,
    "any": Any,
}


def _model_name(hint: str) -> str:
    return re.sub(r"\W", "_", hint) or "Arguments"


def _annotation(node: SchemaNode, hint: str) -> Any:
    if isinstance(node, Primitive):
        return _PRIMITIVES[node.kind]
    if isinstance(node, EnumOf):
        return Literal[node.values]
    if isinstance(node, ListOf):
        return list[_annotation(node.item, f"{hint}_item")]  # type: ignore[misc]
    if isinstance(node, MapOf):
        return dict[StrictStr, _annotation(node.value, f"{hint}_value")]  # type: ignore[misc]
    return compile_model(node, hint)


def compile_model(schema: Record, name: str = "Arguments") -> type[BaseModel]:
    """Compile a record descriptor into a pydantic model.

    Fields are stored under positional names and addressed by alias so that
    argument names never collide with ``BaseModel`` attributes.
    """
    definitions: dict[str, Any] = {}
    for index, (field_name, spec) in enumerate(schema.fields.items()):
        annotation = _annotation(spec.node, f"{name}_{field_name}")
        if spec.required:
            definitions[f"field_{index}"] = (
                annotation,
                PydanticField(..., alias=field_name),
            )
        else:
            definitions[f"field_{index}"] = (
                Optional[annotation],
                PydanticField(default=None, alias=field_name),
            )
    return create_model(  # type: ignore[call-overload,no-any-return]
        _model_name(name), __config__=ConfigDict(extra="ignore"), **definitions
    )


def _format_location(location: tuple[int | str, ...]) -> str:
    path = ""
    for part in location:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "(arguments)"


def _apply_defaults(node: SchemaNode, value: Any) -> Any:
    """Fill optional record fields wherever ``node`` nests a record."""
    if isinstance(node, Record) and isinstance(value, dict):
        for name, spec in node.fields.items():
            item = value.get(name)
            if item is None and not spec.required:
                value[name] = copy.deepcopy(spec.default)
            elif item is not None:
                _apply_defaults(spec.node, item)
    elif isinstance(node, ListOf) and isinstance(value, list):
        for item in value:
            _apply_defaults(node.item, item)
    elif isinstance(node, MapOf) and isinstance(value, dict):
        for item in value.values():
            _apply_defaults(node.value, item)
    return value


class Validator:
    """Validate raw arguments against a compiled :class:`Record`."""

    def __init__(self, schema: Record, tool_name: str | None = None) -> None:
        """Compile ``schema`` once for repeated validation."""
        self.schema = schema
        self.tool_name = tool_name
        self._model = compile_model(schema, tool_name or "Arguments")

    def validate(self, raw: Any) -> dict[str, Any]:
        """Return validated arguments or raise :class:`SchemaValidationError`.

        Args:
            raw: Untyped arguments received from the host. ``None`` is
                treated as an empty object.

        Raises:
            SchemaValidationError: Listing every violated field.

        Returns:
            Plain dictionary with optional fields defaulted.

        """
        try:
            model = self._model.model_validate({} if raw is None else raw)
        except ValidationError as error:
            violations = [
                Violation(_format_location(item["loc"]), item["msg"])
                for item in error.errors()
            ]
            raise SchemaValidationError(violations, tool_name=self.tool_name) from error
        return _apply_defaults(self.schema, model.model_dump(by_alias=True))


def validate(schema: Record, raw: Any) -> dict[str, Any]:
    """Validate ``raw`` against ``schema`` without caching the compiled model."""
    return Validator(schema).validate(raw)
