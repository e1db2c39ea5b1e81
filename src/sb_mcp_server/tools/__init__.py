"""Tool registration helpers for the SB backend MCP server."""

from __future__ import annotations

import httpx

from sb_mcp.tools import ToolDefinition, ping_tool
from sb_mcp_server.config import Settings
from sb_mcp_server.tools import (
    commands,
    database,
    filesystem,
    gitlab,
    http,
    instana,
    jira,
    kubernetes,
    thinking,
)


def build_tools(
    settings: Settings,
    *,
    http_transport: httpx.BaseTransport | None = None,
    db_connect: database.Connect | None = None,
) -> list[ToolDefinition]:
    """Instantiate all tool definitions with the provided settings.

    Args:
        settings: Configuration captured once at startup.
        http_transport: Optional httpx transport shared by HTTP-backed tools.
        db_connect: Optional replacement for ``asyncpg.connect``.

    """
    db = database.Database(settings, connect=db_connect)
    gitlab_client = gitlab.GitLabClient(settings, transport=http_transport)
    jira_client = jira.JiraClient(settings, transport=http_transport)
    instana_client = instana.InstanaClient(settings, transport=http_transport)
    kube = kubernetes.KubernetesClient(settings)
    return [
        ping_tool(),
        thinking.sequential_thinking_tool(),
        thinking.language_intelligence_tool(),
        thinking.code_refactor_tool(),
        thinking.code_navigation_tool(),
        filesystem.read_file_tool(),
        filesystem.write_file_tool(),
        filesystem.list_directory_tool(),
        filesystem.create_file_tool(),
        filesystem.delete_file_tool(),
        commands.run_build_tool(settings),
        commands.run_unit_tests_tool(settings),
        commands.run_integration_tests_tool(settings),
        commands.run_command_tool(settings),
        commands.read_application_logs_tool(),
        commands.read_ci_pipeline_tool(),
        commands.analyze_pipeline_failure_tool(),
        commands.scan_dependencies_tool(settings),
        http.http_request_tool(settings, transport=http_transport),
        http.validate_api_response_tool(),
        http.check_health_endpoint_tool(settings, transport=http_transport),
        database.select_query_tool(db),
        database.describe_schema_tool(db),
        database.list_indexes_tool(db),
        database.explain_query_tool(db),
        gitlab.list_pipelines_tool(gitlab_client),
        gitlab.get_job_failure_tool(gitlab_client),
        gitlab.list_commits_tool(gitlab_client),
        gitlab.create_merge_request_tool(gitlab_client),
        gitlab.open_issue_tool(gitlab_client),
        gitlab.review_merge_request_tool(gitlab_client),
        gitlab.pipeline_status_tool(gitlab_client),
        jira.create_issue_tool(jira_client),
        jira.update_issue_tool(jira_client),
        jira.transition_issue_tool(jira_client),
        jira.assign_issue_tool(jira_client),
        jira.comment_issue_tool(jira_client),
        jira.list_issues_tool(jira_client),
        instana.get_alerts_tool(instana_client),
        instana.list_services_tool(instana_client),
        instana.service_health_tool(instana_client),
        instana.service_metrics_tool(instana_client),
        instana.service_traces_tool(instana_client),
        instana.incident_list_tool(instana_client),
        instana.alert_details_tool(instana_client),
        kubernetes.list_pods_tool(kube),
        kubernetes.get_logs_tool(kube),
        kubernetes.list_namespaces_tool(kube),
        kubernetes.describe_pod_tool(kube),
        kubernetes.get_deployments_tool(kube),
        kubernetes.get_services_tool(kube),
        kubernetes.get_configmaps_tool(kube),
        kubernetes.get_secrets_metadata_tool(kube),
    ]
