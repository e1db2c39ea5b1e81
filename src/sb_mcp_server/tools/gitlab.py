"""GitLab REST API tools."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from sb_mcp.envelope import ToolResult, failure, success
from sb_mcp.schema import field, integer, list_of, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import describe_http_error, http_client, lines_or

MAX_FAILED_JOBS = 2
LOG_TAIL_LINES = 20

_PROJECT_ID = field(string(), "The ID or URL-encoded path of the project")


class GitLabNotConfigured(RuntimeError):
    """Raised when GITLAB_TOKEN is missing."""


class GitLabClient:
    """Thin wrapper over the GitLab v4 API; one HTTP client per call."""

    def __init__(
        self, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> None:
        self._settings = settings
        self._transport = transport
        self.base_url = f"{settings.gitlab_url.rstrip('/')}/api/v4"

    def _client(self) -> httpx.Client:
        if not self._settings.gitlab_token:
            raise GitLabNotConfigured("GITLAB_TOKEN environment variable is not set.")
        return http_client(
            self._settings,
            base_url=self.base_url,
            transport=self._transport,
            headers={"PRIVATE-TOKEN": self._settings.gitlab_token},
        )

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        with self._client() as client:
            response = client.get(path, params=params)
            response.raise_for_status()
            if "json" in response.headers.get("content-type", ""):
                return response.json()
            return response.text

    def post(self, path: str, payload: dict[str, Any]) -> Any:
        with self._client() as client:
            response = client.post(path, json=payload)
            response.raise_for_status()
            return response.json()


def project_path(project_id: str) -> str:
    """Return the API path prefix for a project ID or namespace path."""
    return f"/projects/{quote(project_id, safe='')}"


def _gitlab_error(exc: Exception) -> ToolResult:
    if isinstance(exc, httpx.HTTPError):
        return failure(f"GitLab Error: {describe_http_error(exc)}")
    return failure(f"GitLab Error: {exc}")


_ERRORS = (httpx.HTTPError, GitLabNotConfigured)


def list_pipelines_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_list_pipelines tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            pipelines = gitlab.get(
                f"{project_path(params['projectId'])}/pipelines",
                params={"per_page": params["count"]},
            )
        except _ERRORS as exc:
            return _gitlab_error(exc)
        lines = [
            f"ID: {p['id']} | Status: {p['status']} | Ref: {p['ref']} | URL: {p['web_url']}"
            for p in pipelines
        ]
        return success(lines_or(lines, "No pipelines found."))

    return ToolDefinition(
        name="sb_backend_gitlab_list_pipelines",
        description="List the latest pipelines for a project.",
        input_schema=record(
            projectId=_PROJECT_ID,
            count=optional(integer(), 5, "Number of pipelines to fetch (default 5)"),
        ),
        handler=handler,
    )


def get_job_failure_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_get_job_failure tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        project = project_path(params["projectId"])
        try:
            jobs = gitlab.get(f"{project}/pipelines/{params['pipelineId']}/jobs")
        except _ERRORS as exc:
            return _gitlab_error(exc)

        failed = [job for job in jobs if job.get("status") == "failed"]
        if not failed:
            return success("No failed jobs found in this pipeline.")

        sections = [f"Found {len(failed)} failed jobs:"]
        for job in failed[:MAX_FAILED_JOBS]:
            section = f"--- Job: {job['name']} (ID: {job['id']}) ---\n"
            try:
                trace = gitlab.get(f"{project}/jobs/{job['id']}/trace")
            except httpx.HTTPError as exc:
                section += f"Could not fetch log: {describe_http_error(exc)}"
            else:
                tail = "\n".join(str(trace).splitlines()[-LOG_TAIL_LINES:])
                section += f"Log tail:\n{tail}"
            sections.append(section)
        return success("\n\n".join(sections))

    return ToolDefinition(
        name="sb_backend_gitlab_get_job_failure",
        description="Get failure logs from the failed jobs of a specific pipeline.",
        input_schema=record(
            projectId=_PROJECT_ID,
            pipelineId=field(integer(), "The pipeline ID"),
        ),
        handler=handler,
    )


def list_commits_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_list_commits tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        query: dict[str, Any] = {"per_page": params["count"]}
        if params["ref"]:
            query["ref_name"] = params["ref"]
        try:
            commits = gitlab.get(
                f"{project_path(params['projectId'])}/repository/commits", params=query
            )
        except _ERRORS as exc:
            return _gitlab_error(exc)
        lines = [
            f"Hash: {c['short_id']} | Author: {c['author_name']} | "
            f"Date: {c['created_at']} | Message: {c['title']}"
            for c in commits
        ]
        return success(lines_or(lines, "No commits found."))

    return ToolDefinition(
        name="sb_backend_gitlab_list_commits",
        description="List the latest commits for a project.",
        input_schema=record(
            projectId=_PROJECT_ID,
            count=optional(integer(), 5, "Number of commits to fetch (default 5)"),
            ref=optional(string(), description="Branch or tag name (optional)"),
        ),
        handler=handler,
    )


def create_merge_request_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_create_merge_request tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        payload = {
            "source_branch": params["sourceBranch"],
            "target_branch": params["targetBranch"],
            "title": params["title"],
        }
        if params["description"] is not None:
            payload["description"] = params["description"]
        try:
            mr = gitlab.post(f"{project_path(params['projectId'])}/merge_requests", payload)
        except _ERRORS as exc:
            return _gitlab_error(exc)
        return success(
            "Merge Request Created Successfully!\n"
            f"URL: {mr['web_url']}\nID: {mr['iid']}\nState: {mr['state']}"
        )

    return ToolDefinition(
        name="sb_backend_gitlab_create_merge_request",
        description="Create a new merge request.",
        input_schema=record(
            projectId=_PROJECT_ID,
            sourceBranch=field(string(), "The source branch name"),
            targetBranch=field(
                string(), "The target branch name (usually main or master)"
            ),
            title=field(string(), "Title of the merge request"),
            description=optional(string(), description="Description of the merge request"),
        ),
        handler=handler,
    )


def open_issue_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_open_issue tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        payload: dict[str, Any] = {"title": params["title"]}
        if params["description"] is not None:
            payload["description"] = params["description"]
        if params["labels"]:
            payload["labels"] = ",".join(params["labels"])
        try:
            issue = gitlab.post(f"{project_path(params['projectId'])}/issues", payload)
        except _ERRORS as exc:
            return _gitlab_error(exc)
        return success(
            f"Issue Created: #{issue['iid']} - {issue['title']}\nURL: {issue['web_url']}"
        )

    return ToolDefinition(
        name="sb_backend_gitlab_open_issue",
        description="Open a new issue in GitLab.",
        input_schema=record(
            projectId=_PROJECT_ID,
            title=field(string(), "Title of the issue"),
            description=optional(string(), description="Description of the issue"),
            labels=optional(list_of(string()), description="Labels"),
        ),
        handler=handler,
    )


def review_merge_request_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_review_merge_request tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        base = f"{project_path(params['projectId'])}/merge_requests/{params['mrIid']}"
        try:
            details = gitlab.get(base)
            changes = gitlab.get(f"{base}/changes")
        except _ERRORS as exc:
            return _gitlab_error(exc)
        author = (details.get("author") or {}).get("name", "unknown")
        files = [
            f"- {change['new_path']} ({len(change.get('diff', ''))} bytes diff)"
            for change in changes.get("changes", [])
        ]
        return success(
            f"MR !{params['mrIid']}: {details['title']}\n"
            f"State: {details['state']}\nAuthor: {author}\n\n"
            f"Description:\n{details.get('description') or ''}\n\n"
            "Changes:\n" + "\n".join(files)
        )

    return ToolDefinition(
        name="sb_backend_gitlab_review_merge_request",
        description="Get details and changes of a Merge Request.",
        input_schema=record(
            projectId=field(string(), "Project ID"),
            mrIid=field(integer(), "Merge Request IID"),
        ),
        handler=handler,
    )


def pipeline_status_tool(gitlab: GitLabClient) -> ToolDefinition:
    """Create the gitlab_pipeline_status tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            pipeline = gitlab.get(
                f"{project_path(params['projectId'])}/pipelines/{params['pipelineId']}"
            )
        except _ERRORS as exc:
            return _gitlab_error(exc)
        return success(
            f"Pipeline #{pipeline['id']}\nStatus: {pipeline['status']}\n"
            f"Ref: {pipeline['ref']}\nURL: {pipeline['web_url']}"
        )

    return ToolDefinition(
        name="sb_backend_gitlab_pipeline_status",
        description="Get the status of a specific pipeline.",
        input_schema=record(
            projectId=field(string(), "Project ID"),
            pipelineId=field(integer(), "Pipeline ID"),
        ),
        handler=handler,
    )
