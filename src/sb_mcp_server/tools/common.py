"""Shared helpers for backend tools."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Any

import httpx

from sb_mcp_server.config import Settings


@dataclass
class CommandOutput:
    """Captured result of a finished subprocess."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandTimeout(RuntimeError):
    """Raised when a subprocess exceeds its time budget."""


def run_command(
    args: list[str] | str,
    *,
    cwd: str | None = None,
    timeout: float | None = None,
    shell: bool = False,
) -> CommandOutput:
    """Run a subprocess to completion and capture its output.

    Raises:
        CommandTimeout: If the process runs longer than ``timeout`` seconds.
        FileNotFoundError: If the executable or working directory is missing.

    """
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            shell=shell,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeout(f"Command timed out after {exc.timeout:g} seconds") from exc
    return CommandOutput(completed.returncode, completed.stdout, completed.stderr)


def http_client(
    settings: Settings,
    *,
    base_url: str = "",
    transport: httpx.BaseTransport | None = None,
    **kwargs: Any,
) -> httpx.Client:
    """Create a per-invocation HTTP client honoring the configured timeout."""
    return httpx.Client(
        base_url=base_url,
        timeout=settings.http_timeout_seconds,
        transport=transport,
        **kwargs,
    )


def describe_http_error(exc: httpx.HTTPError) -> str:
    """Render an httpx error with the response body when there is one."""
    if isinstance(exc, httpx.HTTPStatusError):
        body = exc.response.text.strip()
        status = f"{exc.response.status_code} {exc.response.reason_phrase}"
        return f"{status}: {body}" if body else status
    return str(exc) or type(exc).__name__


def lines_or(lines: list[str], empty: str) -> str:
    """Join ``lines`` or fall back to ``empty`` when there are none."""
    return "\n".join(lines) if lines else empty
