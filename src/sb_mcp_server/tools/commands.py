"""Build, test, CI and shell command tools."""

from __future__ import annotations

import collections
import pathlib
from typing import Any

from sb_mcp.envelope import ToolResult, failure, success
from sb_mcp.schema import field, integer, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import CommandTimeout, run_command

FAILURE_MARKERS = ("Error:", "Failed:", "Exception", "Timeout")
MAX_FAILURE_FINDINGS = 10
CI_FILES = (".gitlab-ci.yml", ".gitlab-ci.yaml")
WORKFLOW_GLOBS = (".github/workflows/*.yml", ".github/workflows/*.yaml")


def _script_tool(
    settings: Settings,
    *,
    name: str,
    description: str,
    command: str,
    label: str,
    success_label: str | None = None,
    failure_hint: str = "",
) -> ToolDefinition:
    """Create a tool that runs a fixed project script in ``cwd``.

    ``label`` prefixes failure reports; successful output is prefixed with
    ``success_label`` when given, otherwise with ``label``.
    """
    output_label = success_label or label

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            output = run_command(
                command,
                cwd=params["cwd"],
                timeout=settings.command_timeout_seconds,
                shell=True,
            )
        except (CommandTimeout, OSError) as exc:
            return failure(f"{label} Failed:\n{failure_hint}{exc}")
        if not output.ok:
            return failure(
                f"{label} Failed (exit code {output.returncode}):\n{failure_hint}"
                f"{output.stdout}\n{output.stderr}"
            )
        return success(f"{output_label} Output:\n{output.stdout}\n{output.stderr}")

    return ToolDefinition(
        name=name,
        description=description,
        input_schema=record(cwd=field(string(), "Project root directory")),
        handler=handler,
    )


def run_build_tool(settings: Settings) -> ToolDefinition:
    """Create the run_build tool."""
    return _script_tool(
        settings,
        name="sb_backend_run_build",
        description="Run the build script (npm run build).",
        command="npm run build",
        label="Build",
    )


def run_unit_tests_tool(settings: Settings) -> ToolDefinition:
    """Create the run_unit_tests tool."""
    return _script_tool(
        settings,
        name="sb_backend_run_unit_tests",
        description="Run unit tests (npm test or similar).",
        command="npm test",
        label="Tests",
        success_label="Test",
    )


def run_integration_tests_tool(settings: Settings) -> ToolDefinition:
    """Create the run_integration_tests tool."""
    return _script_tool(
        settings,
        name="sb_backend_run_integration_tests",
        description="Run integration tests.",
        command="npm run test:integration",
        label="Integration Tests",
        success_label="Integration Test",
        failure_hint="(Ensure 'test:integration' script exists)\n",
    )


def run_command_tool(settings: Settings) -> ToolDefinition:
    """Create the generic shell command tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            output = run_command(
                params["command"],
                cwd=params["cwd"],
                timeout=settings.command_timeout_seconds,
                shell=True,
            )
        except (CommandTimeout, OSError) as exc:
            return failure(f"Command Failed:\n{exc}")
        if not output.ok:
            return failure(
                f"Command Failed (exit code {output.returncode}):\n"
                f"{output.stdout}\n{output.stderr}"
            )
        return success(f"Output:\n{output.stdout}\n{output.stderr}")

    return ToolDefinition(
        name="sb_backend_run_command",
        description="Run a shell command.",
        input_schema=record(
            command=field(string(), "Command to execute"),
            cwd=field(string(), "Working directory"),
        ),
        handler=handler,
    )


def tail_lines(path: pathlib.Path, count: int) -> list[str]:
    """Return the last ``count`` lines of a text file."""
    if count <= 0:
        return []
    with path.open(encoding="utf-8", errors="replace") as handle:
        return [line.rstrip("\n") for line in collections.deque(handle, maxlen=count)]


def read_application_logs_tool() -> ToolDefinition:
    """Create the read_application_logs tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            lines = tail_lines(pathlib.Path(params["logPath"]), params["lines"])
        except OSError as exc:
            return failure(f"Error reading logs: {exc}")
        return success("\n".join(lines))

    return ToolDefinition(
        name="sb_backend_read_application_logs",
        description="Read the last N lines of a log file.",
        input_schema=record(
            logPath=field(string(), "Path to the log file"),
            lines=optional(integer(), 50, "Number of lines to return"),
        ),
        handler=handler,
    )


def read_ci_pipeline_tool() -> ToolDefinition:
    """Create the read_ci_pipeline tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        repo = pathlib.Path(params["repoPath"])
        if not repo.is_dir():
            return failure(f"Error reading CI config: {repo} is not a directory")
        candidates = [repo / name for name in CI_FILES]
        for pattern in WORKFLOW_GLOBS:
            candidates.extend(sorted(repo.glob(pattern)))
        sections = []
        for path in candidates:
            if path.is_file():
                relative = path.relative_to(repo)
                sections.append(f"# {relative}\n{path.read_text(encoding='utf-8')}")
        if not sections:
            return success("No standard CI file found")
        return success(*sections)

    return ToolDefinition(
        name="sb_backend_read_ci_pipeline",
        description="Read the CI configuration file (e.g., .gitlab-ci.yml).",
        input_schema=record(repoPath=field(string(), "Repository Path")),
        handler=handler,
    )


def find_failure_lines(log_content: str, limit: int = MAX_FAILURE_FINDINGS) -> list[str]:
    """Return up to ``limit`` log lines containing a known failure marker."""
    findings = [
        line
        for line in log_content.splitlines()
        if any(marker in line for marker in FAILURE_MARKERS)
    ]
    return findings[:limit]


def analyze_pipeline_failure_tool() -> ToolDefinition:
    """Create the analyze_pipeline_failure tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        findings = find_failure_lines(params["logContent"])
        if not findings:
            return success("No obvious common errors found in the snippet.")
        return success("Potential Issues Found:\n" + "\n".join(findings))

    return ToolDefinition(
        name="sb_backend_analyze_pipeline_failure",
        description="Analyze a failed pipeline log provided as text.",
        input_schema=record(logContent=field(string(), "The log content to analyze")),
        handler=handler,
    )


def scan_dependencies_tool(settings: Settings) -> ToolDefinition:
    """Create the scan_dependencies tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            output = run_command(
                ["npm", "audit"],
                cwd=params["cwd"],
                timeout=settings.command_timeout_seconds,
            )
        except (CommandTimeout, OSError) as exc:
            return failure(f"Dependency scan failed: {exc}")
        # npm audit exits non-zero when it finds vulnerabilities.
        if not output.ok:
            return success(f"Vulnerabilities Found:\n{output.stdout or output.stderr}")
        return success(output.stdout)

    return ToolDefinition(
        name="sb_backend_scan_dependencies",
        description="Run a security scan on dependencies (npm audit).",
        input_schema=record(cwd=field(string(), "Project directory")),
        handler=handler,
    )
