"""Configuration settings for the SB backend MCP server."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration from environment variables and ``.env``.

    Settings are read once at startup and handed to each tool factory; no
    tool reads the environment at call time.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Server
    server_name: str = "sb-backend-server"
    log_level: str = "INFO"
    log_json: bool = False
    call_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    max_in_flight: int = Field(default=8, ge=1)

    # PostgreSQL
    database_url: Optional[str] = None

    # GitLab
    gitlab_url: str = "https://gitlab.com"
    gitlab_token: Optional[str] = None

    # Jira
    jira_url: Optional[str] = None
    jira_user: Optional[str] = None
    jira_api_token: Optional[str] = None

    # Instana
    instana_api_url: Optional[str] = None
    instana_api_token: Optional[str] = None

    # Kubernetes
    kube_context: Optional[str] = None

    # Outbound calls
    http_timeout_seconds: float = 30.0
    command_timeout_seconds: float = 600.0

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_url and self.jira_user and self.jira_api_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
