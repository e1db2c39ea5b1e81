"""File system tools."""

from __future__ import annotations

import pathlib
from typing import Any

from sb_mcp.envelope import ToolResult, failure, success
from sb_mcp.schema import field, record, string
from sb_mcp.tools import ToolDefinition

_FILE_PATH = record(filePath=field(string(), "Absolute path to the file"))


def read_file_tool() -> ToolDefinition:
    """Create the fs_read_file tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            content = pathlib.Path(params["filePath"]).read_text(encoding="utf-8")
        except OSError as exc:
            return failure(f"Error reading file: {exc}")
        return success(content)

    return ToolDefinition(
        name="sb_backend_fs_read_file",
        description="Read the contents of a file.",
        input_schema=_FILE_PATH,
        handler=handler,
    )


def write_file_tool() -> ToolDefinition:
    """Create the fs_write_file tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        path = pathlib.Path(params["filePath"])
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(params["content"], encoding="utf-8")
        except OSError as exc:
            return failure(f"Error writing file: {exc}")
        return success(f"Successfully wrote to {path}")

    return ToolDefinition(
        name="sb_backend_fs_write_file",
        description="Write content to a file (overwrites existing).",
        input_schema=record(
            filePath=field(string(), "Absolute path to the file"),
            content=field(string(), "Content to write"),
        ),
        handler=handler,
    )


def list_directory_tool() -> ToolDefinition:
    """Create the fs_list_directory tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            entries = sorted(pathlib.Path(params["dirPath"]).iterdir())
        except OSError as exc:
            return failure(f"Error listing directory: {exc}")
        lines = [
            f"{'[DIR]' if entry.is_dir() else '[FILE]'} {entry.name}" for entry in entries
        ]
        return success("\n".join(lines) if lines else "Empty directory.")

    return ToolDefinition(
        name="sb_backend_fs_list_directory",
        description="List contents of a directory.",
        input_schema=record(dirPath=field(string(), "Absolute path to the directory")),
        handler=handler,
    )


def create_file_tool() -> ToolDefinition:
    """Create the fs_create_file tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        path = pathlib.Path(params["filePath"])
        try:
            path.write_text("", encoding="utf-8")
        except OSError as exc:
            return failure(f"Error creating file: {exc}")
        return success(f"Created file {path}")

    return ToolDefinition(
        name="sb_backend_fs_create_file",
        description="Create a new empty file.",
        input_schema=_FILE_PATH,
        handler=handler,
    )


def delete_file_tool() -> ToolDefinition:
    """Create the fs_delete_file tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        path = pathlib.Path(params["filePath"])
        try:
            path.unlink()
        except OSError as exc:
            return failure(f"Error deleting file: {exc}")
        return success(f"Deleted file {path}")

    return ToolDefinition(
        name="sb_backend_fs_delete_file",
        description="Delete a file.",
        input_schema=_FILE_PATH,
        handler=handler,
    )
