"""Reasoning and code-assistance tools that need no external service."""

from __future__ import annotations

import pathlib
import re
from typing import Any

from sb_mcp.envelope import ToolResult, failure, success
from sb_mcp.schema import enum, field, number, optional, record, string
from sb_mcp.tools import ToolDefinition

MAX_SYMBOL_MATCHES = 50
SOURCE_SUFFIXES = {".py", ".js", ".jsx", ".ts", ".tsx", ".java", ".go", ".rb", ".kt"}
SKIPPED_DIRECTORIES = {".git", "node_modules", "__pycache__", ".venv", "dist", "build"}


def sequential_thinking_tool() -> ToolDefinition:
    """Create the sequential thinking scratchpad tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        progress = params["step"]
        total = params["totalSteps"]
        if total is not None:
            progress = f"{progress}/{int(total) if total.is_integer() else total}"
        lines = [f"[Thinking - Step {progress}]", params["thought"]]
        if params["nextStep"]:
            lines.append(f"Next: {params['nextStep']}")
        return success("\n".join(lines))

    return ToolDefinition(
        name="sb_backend_sequential_thinking",
        description=(
            "A tool to help structure complex problem solving by recording "
            "thought steps."
        ),
        input_schema=record(
            step=field(string(), "The current step in the thought process"),
            totalSteps=optional(number(), description="Estimated total steps"),
            thought=field(string(), "The detailed thought content"),
            nextStep=optional(string(), description="What to do next"),
        ),
        handler=handler,
    )


def _detect_language(content: str) -> str:
    if re.search(r"\b(function|const|let)\b|=>", content):
        return "Likely JavaScript/TypeScript"
    if re.search(r"^\s*(def |import |from \S+ import )", content, re.MULTILINE):
        return "Likely Python"
    return "Unknown/Text"


def language_intelligence_tool() -> ToolDefinition:
    """Create the language detection / formatting tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        content = params["content"]
        action = params["action"]
        if action == "detect_language":
            return success(_detect_language(content))
        if action == "format":
            return success(re.sub(r"\s+", " ", content).strip())
        return success("Suggestion: Use shorter sentences and active voice.")

    return ToolDefinition(
        name="sb_backend_language_intelligence",
        description="Analyze text or code to detect language, format, or improve clarity.",
        input_schema=record(
            content=field(string(), "Text or code to analyze"),
            action=field(
                enum("detect_language", "format", "improve_clarity"),
                "Action to perform",
            ),
        ),
        handler=handler,
    )


def code_refactor_tool() -> ToolDefinition:
    """Create the refactoring suggestion tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        code = params["code"]
        notes = ["Analysis: Code structure seems valid."]
        longest = max((len(line) for line in code.splitlines()), default=0)
        if longest > 100:
            notes.append(f"Some lines are {longest} characters long; consider wrapping.")
        if code.count("\n") > 50:
            notes.append("The block is long; extract cohesive parts into functions.")
        notes.append(
            "Suggestion: Ensure variable names are descriptive and extract complex "
            "logic into helper functions."
        )
        heading = f"Refactoring Logic for goal: '{params['goal']}'"
        return success(heading + "\n\n" + "\n".join(notes))

    return ToolDefinition(
        name="sb_backend_code_refactor",
        description="Suggest refactoring for a block of code.",
        input_schema=record(
            code=field(string(), "Code to refactor"),
            goal=field(
                string(),
                "Refactoring goal (e.g., 'improve performance', 'make cleaner')",
            ),
        ),
        handler=handler,
    )


def _definition_pattern(symbol: str) -> re.Pattern[str]:
    name = re.escape(symbol)
    return re.compile(
        rf"\b(class|def|function|interface|type|const|let|var|func)\s+{name}\b"
    )


def find_symbol(
    root: pathlib.Path, symbol: str, limit: int = MAX_SYMBOL_MATCHES
) -> list[str]:
    """Return ``path:line: text`` entries for definitions of ``symbol``."""
    pattern = _definition_pattern(symbol)
    matches: list[str] = []
    for path in sorted(root.rglob("*")):
        if len(matches) >= limit:
            break
        if SKIPPED_DIRECTORIES.intersection(path.parts):
            continue
        if path.suffix not in SOURCE_SUFFIXES or not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for number, line in enumerate(text.splitlines(), start=1):
            if pattern.search(line):
                matches.append(f"{path}:{number}: {line.strip()}")
                if len(matches) >= limit:
                    break
    return matches


def code_navigation_tool() -> ToolDefinition:
    """Create the symbol search tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        root = pathlib.Path(params["path"])
        if not root.is_dir():
            return failure(f"Directory not found: {root}")
        matches = find_symbol(root, params["query"])
        if not matches:
            return success(f"No definitions of '{params['query']}' found under {root}.")
        return success(f"Definitions of '{params['query']}':\n" + "\n".join(matches))

    return ToolDefinition(
        name="sb_backend_code_navigation",
        description="Search for symbols (classes, functions) in the codebase.",
        input_schema=record(
            query=field(string(), "Symbol name to search for"),
            path=optional(string(), ".", "Directory to search in (default: current)"),
        ),
        handler=handler,
    )
