"""Jira Cloud REST API (v3) tools.

Requires ``JIRA_URL``, ``JIRA_USER`` and ``JIRA_API_TOKEN``. The tools are
always registered so discovery works; calls fail with a clear message until
the credentials are configured.
"""

from __future__ import annotations

from typing import Any

import httpx

from sb_mcp.envelope import JsonContent, ToolResult, failure, success
from sb_mcp.schema import (
    any_value,
    field,
    integer,
    list_of,
    map_of,
    optional,
    record,
    string,
)
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import http_client

DEFAULT_SEARCH_FIELDS = ["summary", "status", "assignee", "priority"]

_ISSUE_KEY = field(string(), "Issue key, e.g. PROJ-123")


class JiraNotConfigured(RuntimeError):
    """Raised when Jira credentials are missing."""


def to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text in an Atlassian Document Format document."""
    paragraphs = [
        {"type": "paragraph", "content": [{"type": "text", "text": chunk}]}
        for chunk in text.split("\n\n")
        if chunk
    ]
    return {"type": "doc", "version": 1, "content": paragraphs}


class JiraClient:
    """Minimal Jira client; one HTTP client per call."""

    def __init__(
        self, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> None:
        self._settings = settings
        self._transport = transport
        self.site_url = (settings.jira_url or "").rstrip("/")

    def _client(self) -> httpx.Client:
        if not self._settings.jira_configured:
            raise JiraNotConfigured(
                "Jira is not configured (set JIRA_URL, JIRA_USER and JIRA_API_TOKEN)"
            )
        return http_client(
            self._settings,
            base_url=f"{self.site_url}/rest/api/3",
            transport=self._transport,
            auth=(self._settings.jira_user or "", self._settings.jira_api_token or ""),
            headers={"Accept": "application/json"},
        )

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        with self._client() as client:
            response = client.request(method, path, **kwargs)
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()


def _jira_error(exc: Exception) -> ToolResult:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            messages = exc.response.json().get("errorMessages") or []
        except ValueError:
            messages = []
        if messages:
            return failure(f"Jira error: {', '.join(messages)}")
    return failure(f"Jira error: {exc}")


_ERRORS = (httpx.HTTPError, JiraNotConfigured)


def create_issue_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_create_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        fields: dict[str, Any] = {
            "project": {"key": params["projectKey"]},
            "summary": params["summary"],
            "issuetype": {"name": params["issueType"]},
        }
        if params["description"]:
            fields["description"] = to_adf(params["description"])
        try:
            data = jira.request("POST", "/issue", json={"fields": fields})
        except _ERRORS as exc:
            return _jira_error(exc)
        return success(f"Issue created: {data['key']}")

    return ToolDefinition(
        name="sb_backend_jira_create_issue",
        description="Create a new Jira issue (ticket).",
        input_schema=record(
            projectKey=field(string(), "Jira project key (e.g. PROJ)"),
            summary=field(string(), "Short summary of the issue"),
            description=optional(string(), description="Long description (optional)"),
            issueType=optional(string(), "Task", "Issue type (Task, Bug, ...)"),
        ),
        handler=handler,
    )


def update_issue_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_update_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            jira.request(
                "PUT", f"/issue/{params['issueKey']}", json={"fields": params["fields"]}
            )
        except _ERRORS as exc:
            return _jira_error(exc)
        return success(f"Issue {params['issueKey']} updated")

    return ToolDefinition(
        name="sb_backend_jira_update_issue",
        description="Update fields of an existing Jira issue.",
        input_schema=record(
            issueKey=_ISSUE_KEY,
            fields=field(
                map_of(any_value()),
                "Object with fields to update (Jira field names as keys)",
            ),
        ),
        handler=handler,
    )


def transition_issue_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_transition_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            jira.request(
                "POST",
                f"/issue/{params['issueKey']}/transitions",
                json={"transition": {"id": params["transitionId"]}},
            )
        except _ERRORS as exc:
            return _jira_error(exc)
        return success(
            f"Issue {params['issueKey']} transitioned (id={params['transitionId']})"
        )

    return ToolDefinition(
        name="sb_backend_jira_transition_issue",
        description="Transition an issue to a new status (workflow).",
        input_schema=record(
            issueKey=_ISSUE_KEY,
            transitionId=field(string(), "Transition ID, see the issue's transitions"),
        ),
        handler=handler,
    )


def assign_issue_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_assign_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            jira.request(
                "PUT",
                f"/issue/{params['issueKey']}/assignee",
                json={"accountId": params["assigneeAccountId"]},
            )
        except _ERRORS as exc:
            return _jira_error(exc)
        return success(f"Issue {params['issueKey']} assigned")

    return ToolDefinition(
        name="sb_backend_jira_assign_issue",
        description="Assign an issue to a user.",
        input_schema=record(
            issueKey=_ISSUE_KEY,
            assigneeAccountId=field(string(), "Atlassian accountId of the assignee"),
        ),
        handler=handler,
    )


def comment_issue_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_comment_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            jira.request(
                "POST",
                f"/issue/{params['issueKey']}/comment",
                json={"body": to_adf(params["comment"])},
            )
        except _ERRORS as exc:
            return _jira_error(exc)
        return success(f"Comment added to {params['issueKey']}")

    return ToolDefinition(
        name="sb_backend_jira_comment_issue",
        description="Add a comment to a Jira issue.",
        input_schema=record(
            issueKey=_ISSUE_KEY,
            comment=field(string(), "Comment body (plain text)"),
        ),
        handler=handler,
    )


def _summarize_issue(issue: dict[str, Any], site_url: str) -> dict[str, Any]:
    fields = issue.get("fields") or {}
    assignee = fields.get("assignee")
    return {
        "key": issue["key"],
        "summary": fields.get("summary"),
        "status": (fields.get("status") or {}).get("name"),
        "assignee": (
            f"{assignee['displayName']} ({assignee['accountId']})"
            if assignee
            else "Unassigned"
        ),
        "priority": (fields.get("priority") or {}).get("name"),
        "link": f"{site_url}/browse/{issue['key']}",
    }


def list_issues_tool(jira: JiraClient) -> ToolDefinition:
    """Create the jira_list_issues tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            data = jira.request(
                "GET",
                "/search",
                params={
                    "jql": params["jql"],
                    "maxResults": params["maxResults"],
                    "fields": ",".join(params["fields"]),
                    "validateQuery": "strict",
                },
            )
        except _ERRORS as exc:
            return _jira_error(exc)
        issues = [_summarize_issue(issue, jira.site_url) for issue in data.get("issues", [])]
        return success(JsonContent(issues))

    return ToolDefinition(
        name="sb_backend_jira_list_issues",
        description="List issues using JQL (Jira Query Language).",
        input_schema=record(
            jql=field(
                string(), "JQL query string (e.g. 'project = SB AND status = Backlog')"
            ),
            maxResults=optional(integer(), 20, "Max number of results to return"),
            fields=optional(
                list_of(string()), DEFAULT_SEARCH_FIELDS, "List of fields to include"
            ),
        ),
        handler=handler,
    )
