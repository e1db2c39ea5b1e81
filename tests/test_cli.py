"""CLI behavior smoke tests."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from pytest import CaptureFixture, MonkeyPatch

from sb_mcp.tools import PING_TOOL_NAME
from sb_mcp_server import main as server_main
from sb_mcp_server.config import Settings


@pytest.fixture(autouse=True)
def _cli_settings(monkeypatch: MonkeyPatch, settings: Settings) -> Iterator[None]:
    """Run the CLI against test settings and restore logging afterwards."""
    monkeypatch.setattr(server_main, "get_settings", lambda: settings)
    yield
    structlog.reset_defaults()


def test_cli_catalog_flag(capsys: CaptureFixture[str]) -> None:
    """Catalog flag should print tool discovery metadata."""
    # Arrange
    argv: list[str] = ["--catalog"]

    # Act
    exit_code = server_main.main(argv)

    # Assert
    assert exit_code == 0
    catalog = json.loads(capsys.readouterr().out)
    assert PING_TOOL_NAME in catalog
    assert catalog[PING_TOOL_NAME]["description"]
    assert catalog["sb_backend_jira_create_issue"]["inputSchema"]["required"] == [
        "projectKey",
        "summary",
    ]
    assert len(catalog) == 53


def test_cli_calls_ping(capsys: CaptureFixture[str]) -> None:
    """A one-off call prints the response envelope."""
    exit_code = server_main.main(["--call", PING_TOOL_NAME])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {
        "content": [{"type": "text", "text": "pong"}],
        "isError": False,
    }


def test_cli_reports_failed_calls(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    """Error envelopes are printed and exit with status 1."""
    missing = tmp_path / "missing.txt"

    exit_code = server_main.main(
        [
            "--call",
            "sb_backend_fs_read_file",
            "--arguments",
            json.dumps({"filePath": str(missing)}),
        ]
    )

    assert exit_code == 1
    response = json.loads(capsys.readouterr().out)
    assert response["isError"] is True
    assert response["content"][0]["text"].startswith("Error reading file:")


def test_cli_reports_invalid_arguments(capsys: CaptureFixture[str]) -> None:
    """Schema violations are envelopes, not crashes."""
    exit_code = server_main.main(["--call", "sb_backend_fs_read_file"])

    assert exit_code == 1
    response = json.loads(capsys.readouterr().out)
    assert "filePath" in response["content"][0]["text"]


def test_cli_rejects_unknown_tool(capsys: CaptureFixture[str]) -> None:
    """Unknown tools exit with a usage error."""
    exit_code = server_main.main(["--call", "nope"])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Unknown tool: nope" in captured.err


def test_cli_rejects_malformed_arguments(capsys: CaptureFixture[str]) -> None:
    """Arguments must be valid JSON."""
    exit_code = server_main.main(["--call", PING_TOOL_NAME, "--arguments", "{oops"])

    assert exit_code == 2
    assert "not valid JSON" in capsys.readouterr().err
