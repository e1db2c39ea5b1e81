"""Tests for server assembly and configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sb_mcp.tools import PING_TOOL_NAME
from sb_mcp_server.config import Settings
from sb_mcp_server.server import (
    SERVER_VERSION,
    build_dispatcher,
    build_registry,
    build_stdio_transport,
)


class TestServerAssembly:
    """Behavioral coverage for registry, dispatcher and transport wiring."""

    def test_registers_every_tool_once(self, settings: Settings) -> None:
        """All tools register under unique prefixed names."""
        # Act
        registry = build_registry(settings)

        # Assert
        names = [tool.name for tool in registry.list()]
        assert names[0] == PING_TOOL_NAME
        assert len(names) == len(set(names)) == 53
        assert all(name.startswith("sb_backend_") for name in names)

    def test_unconfigured_services_are_still_discoverable(
        self, unconfigured_settings: Settings
    ) -> None:
        """Missing credentials do not hide tools from discovery."""
        registry = build_registry(unconfigured_settings)

        assert "sb_backend_jira_create_issue" in registry
        assert "sb_backend_db_select_query" in registry
        assert len(registry) == 53

    def test_settings_flow_into_dispatcher_and_transport(self) -> None:
        """Timeout and concurrency settings reach the runtime objects."""
        settings = Settings(
            _env_file=None,
            server_name="custom",
            call_timeout_seconds=2.5,
            max_in_flight=3,
        )
        registry = build_registry(settings)

        dispatcher = build_dispatcher(registry, settings)
        transport = build_stdio_transport(registry, dispatcher, settings)

        assert dispatcher.call_timeout == 2.5
        assert transport.max_in_flight == 3
        assert transport.server_name == "custom"
        assert transport.server_version == SERVER_VERSION


class TestSettings:
    """Environment-driven configuration."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Values are taken from environment variables."""
        monkeypatch.setenv("GITLAB_TOKEN", "from-env")
        monkeypatch.setenv("MAX_IN_FLIGHT", "4")

        settings = Settings(_env_file=None)

        assert settings.gitlab_token == "from-env"
        assert settings.max_in_flight == 4

    def test_jira_requires_all_credentials(self) -> None:
        """Jira counts as configured only with URL, user and token."""
        partial = Settings(_env_file=None, jira_url="https://x.atlassian.net", jira_user="a")

        assert not partial.jira_configured
        assert partial.model_copy(update={"jira_api_token": "t"}).jira_configured

    @pytest.mark.parametrize(
        "overrides", [{"max_in_flight": 0}, {"call_timeout_seconds": 0}]
    )
    def test_rejects_invalid_limits(self, overrides: dict[str, object]) -> None:
        """Limits must be positive."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)
