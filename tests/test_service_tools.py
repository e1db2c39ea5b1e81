"""Coverage for database, Jira, Instana and Kubernetes tools with fakes."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from kubernetes.client import (
    ApiClient,
    AppsV1Api,
    CoreV1Api,
    V1ContainerStatus,
    V1NamespaceList,
    V1ObjectMeta,
    V1Pod,
    V1PodList,
    V1PodStatus,
    V1Secret,
    V1SecretList,
)
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException

from sb_mcp.envelope import ToolFailure, ToolResult, ToolSuccess
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools import database, instana, jira, kubernetes


def _call(tool: ToolDefinition, **arguments: Any) -> ToolResult:
    return tool.handler(tool.validate(arguments))


async def _acall(tool: ToolDefinition, **arguments: Any) -> ToolResult:
    return await tool.handler(tool.validate(arguments))


def _text(result: ToolResult) -> str:
    assert isinstance(result, ToolSuccess), result
    return "\n".join(block.text for block in result.content)


class _FakeConnection:
    """Stand-in for an asyncpg connection."""

    def __init__(self, rows: list[dict[str, Any]], error: Exception | None = None) -> None:
        self.rows = rows
        self.error = error
        self.queries: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        self.queries.append((query, args))
        if self.error is not None:
            raise self.error
        return self.rows

    async def close(self) -> None:
        self.closed = True


def _database(settings: Settings, connection: _FakeConnection) -> database.Database:
    async def connect(dsn: str) -> _FakeConnection:
        assert dsn == settings.database_url
        return connection

    return database.Database(settings, connect=connect)


class TestDatabaseTools:
    """Behavioral coverage for the PostgreSQL tools."""

    @pytest.mark.anyio()
    async def test_select_returns_rows(self, settings: Settings) -> None:
        """Read-only queries return rows and always close the connection."""
        connection = _FakeConnection([{"id": 1, "name": "a"}])
        tool = database.select_query_tool(_database(settings, connection))

        result = await _acall(tool, query="SELECT id, name FROM users")

        assert json.loads(_text(result)) == [{"id": 1, "name": "a"}]
        assert connection.closed

    @pytest.mark.anyio()
    async def test_select_rejects_writes(self, settings: Settings) -> None:
        """Statements other than SELECT or EXPLAIN never reach the database."""
        connection = _FakeConnection([])
        tool = database.select_query_tool(_database(settings, connection))

        result = await _acall(tool, query="  DELETE FROM users")

        assert result == ToolFailure("Error: Only SELECT or EXPLAIN queries are allowed.")
        assert connection.queries == []

    @pytest.mark.anyio()
    async def test_query_errors_close_the_connection(self, settings: Settings) -> None:
        """Errors are reported and the connection is still closed."""
        connection = _FakeConnection([], error=ConnectionResetError("server closed"))
        tool = database.describe_schema_tool(_database(settings, connection))

        result = await _acall(tool)

        assert isinstance(result, ToolFailure)
        assert result.message == "Error describing schema: server closed"
        assert connection.queries[0][1] == ("public",)
        assert connection.closed

    @pytest.mark.anyio()
    async def test_list_indexes_filters_by_table(self, settings: Settings) -> None:
        """A table name adds a parameterized filter."""
        connection = _FakeConnection([])
        tool = database.list_indexes_tool(_database(settings, connection))

        await _acall(tool, tableName="users")
        await _acall(tool)

        filtered, unfiltered = connection.queries
        assert filtered[0].endswith("AND tablename = $1")
        assert filtered[1] == ("users",)
        assert unfiltered[1] == ()

    @pytest.mark.anyio()
    async def test_explain_renders_plan(self, settings: Settings) -> None:
        """Plan rows are joined under a heading."""
        connection = _FakeConnection(
            [{"QUERY PLAN": "Seq Scan on users"}, {"QUERY PLAN": "  Filter: (id = 1)"}]
        )
        tool = database.explain_query_tool(_database(settings, connection))

        result = await _acall(tool, query="SELECT * FROM users WHERE id = 1")

        assert _text(result) == "Query Plan:\nSeq Scan on users\n  Filter: (id = 1)"
        assert connection.queries[0][0] == "EXPLAIN SELECT * FROM users WHERE id = 1"

    @pytest.mark.anyio()
    async def test_missing_database_url(self, unconfigured_settings: Settings) -> None:
        """Calls fail cleanly when no database is configured."""
        tool = database.select_query_tool(database.Database(unconfigured_settings))

        result = await _acall(tool, query="SELECT 1")

        assert result == ToolFailure("DB Error: DATABASE_URL is not set")


def _jira(
    settings: Settings, response: httpx.Response
) -> tuple[jira.JiraClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response

    return jira.JiraClient(settings, transport=httpx.MockTransport(handle)), requests


class TestJiraTools:
    """Behavioral coverage for the Jira tools."""

    def test_create_issue_sends_adf_description(self, settings: Settings) -> None:
        """Descriptions are converted to Atlassian Document Format."""
        client, requests = _jira(settings, httpx.Response(201, json={"key": "SB-12"}))

        result = _call(
            jira.create_issue_tool(client),
            projectKey="SB",
            summary="Login fails",
            description="Steps\n\nExpected",
        )

        assert _text(result) == "Issue created: SB-12"
        sent = requests[0]
        assert str(sent.url) == "https://example.atlassian.net/rest/api/3/issue"
        assert sent.headers["Authorization"].startswith("Basic ")
        fields = json.loads(sent.content)["fields"]
        assert fields["issuetype"] == {"name": "Task"}
        assert [p["content"][0]["text"] for p in fields["description"]["content"]] == [
            "Steps",
            "Expected",
        ]

    def test_transition_accepts_empty_response(self, settings: Settings) -> None:
        """204 responses are treated as success."""
        client, requests = _jira(settings, httpx.Response(204))

        result = _call(
            jira.transition_issue_tool(client), issueKey="SB-12", transitionId="31"
        )

        assert _text(result) == "Issue SB-12 transitioned (id=31)"
        assert json.loads(requests[0].content) == {"transition": {"id": "31"}}

    def test_list_issues_summarizes_results(self, settings: Settings) -> None:
        """Search results are reduced to the key fields with browse links."""
        client, requests = _jira(
            settings,
            httpx.Response(
                200,
                json={
                    "issues": [
                        {
                            "key": "SB-1",
                            "fields": {
                                "summary": "Crash",
                                "status": {"name": "Backlog"},
                                "assignee": None,
                                "priority": {"name": "High"},
                            },
                        }
                    ]
                },
            ),
        )

        result = _call(jira.list_issues_tool(client), jql="project = SB")

        assert json.loads(_text(result)) == [
            {
                "key": "SB-1",
                "summary": "Crash",
                "status": "Backlog",
                "assignee": "Unassigned",
                "priority": "High",
                "link": "https://example.atlassian.net/browse/SB-1",
            }
        ]
        params = requests[0].url.params
        assert params["maxResults"] == "20"
        assert params["fields"] == "summary,status,assignee,priority"

    def test_error_messages_are_reported(self, settings: Settings) -> None:
        """Jira error messages are surfaced in the failure."""
        client, _ = _jira(
            settings,
            httpx.Response(400, json={"errorMessages": ["Issue does not exist"]}),
        )

        result = _call(jira.comment_issue_tool(client), issueKey="SB-404", comment="hi")

        assert result == ToolFailure("Jira error: Issue does not exist")

    def test_unconfigured_jira_fails_at_call_time(
        self, unconfigured_settings: Settings
    ) -> None:
        """Tools exist without credentials but report the missing configuration."""
        client = jira.JiraClient(unconfigured_settings)

        result = _call(jira.assign_issue_tool(client), issueKey="SB-1", assigneeAccountId="abc")

        assert isinstance(result, ToolFailure)
        assert "Jira is not configured" in result.message

    def test_to_adf_skips_empty_paragraphs(self) -> None:
        """Blank chunks do not produce empty paragraphs."""
        document = jira.to_adf("one\n\n\n\ntwo")

        assert document["type"] == "doc"
        assert len(document["content"]) == 2


def _instana(
    settings: Settings, payload: Any
) -> tuple[instana.InstanaClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=payload)

    return instana.InstanaClient(settings, transport=httpx.MockTransport(handle)), requests


class TestInstanaTools:
    """Behavioral coverage for the Instana tools."""

    def test_get_alerts_lists_open_events(self, settings: Settings) -> None:
        """Open events are rendered one per line up to the limit."""
        events = [
            {"severity": 10, "title": f"High latency {n}", "startTime": 1000 + n}
            for n in range(3)
        ]
        client, requests = _instana(settings, events)

        text = _text(_call(instana.get_alerts_tool(client), limit=2))

        assert text.splitlines() == [
            "[10] High latency 0 (Start: 1000)",
            "[10] High latency 1 (Start: 1001)",
        ]
        assert requests[0].headers["Authorization"] == "apiToken instana-token"
        assert requests[0].url.params["state"] == "OPEN"

    def test_get_alerts_without_events(self, settings: Settings) -> None:
        """An empty event list has a dedicated message."""
        client, _ = _instana(settings, [])

        assert _text(_call(instana.get_alerts_tool(client))) == (
            "No open alerts found in Instana."
        )

    def test_list_services_is_capped(self, settings: Settings) -> None:
        """At most ten services are listed."""
        items = [{"id": f"s{n}", "label": f"svc-{n}"} for n in range(15)]
        client, _ = _instana(settings, {"items": items})

        lines = _text(_call(instana.list_services_tool(client))).splitlines()

        assert len(lines) == instana.MAX_SERVICES
        assert lines[0] == "ID: s0 | Label: svc-0"

    def test_service_metrics_requests_each_metric(self, settings: Settings) -> None:
        """Every requested metric is sent as its own query parameter."""
        client, requests = _instana(settings, {"metrics": {}})

        result = _call(
            instana.service_metrics_tool(client),
            serviceId="svc/1",
            metrics=["calls", "latency"],
        )

        assert json.loads(_text(result)) == {"metrics": {}}
        sent = requests[0]
        assert sent.url.params.get_list("metric") == ["calls", "latency"]
        assert sent.url.params["windowSize"] == str(instana.WINDOW_SIZE_MS)
        assert b"svc%2F1" in sent.url.raw_path

    def test_unconfigured_instana(self, unconfigured_settings: Settings) -> None:
        """Missing credentials are reported as failures."""
        client = instana.InstanaClient(unconfigured_settings)

        result = _call(instana.incident_list_tool(client))

        assert isinstance(result, ToolFailure)
        assert "INSTANA_API_URL" in result.message


class _FakeApi:
    """Kubernetes API group stand-in that records calls and replays answers."""

    def __init__(self, **answers: Any) -> None:
        self.answers = answers
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def __getattr__(self, name: str) -> Any:
        if name not in self.answers:
            raise AttributeError(name)

        def call(*args: Any, **kwargs: Any) -> Any:
            self.calls.append((name, args, kwargs))
            answer = self.answers[name]
            if isinstance(answer, Exception):
                raise answer
            return answer

        return call


def _kube(settings: Settings, **answers: Any) -> tuple[kubernetes.KubernetesClient, _FakeApi]:
    core = _FakeApi(**answers)
    return kubernetes.KubernetesClient(settings, core_api=core, apps_api=_FakeApi()), core


class TestKubernetesTools:
    """Behavioral coverage for the Kubernetes API tools."""

    def test_list_pods(self, settings: Settings) -> None:
        """Pods are listed with phase and restart count."""
        pods = V1PodList(
            items=[
                V1Pod(
                    metadata=V1ObjectMeta(name="api-1"),
                    status=V1PodStatus(
                        phase="Running",
                        container_statuses=[
                            V1ContainerStatus(
                                image="api:1",
                                image_id="sha256:abc",
                                name="api",
                                ready=True,
                                restart_count=2,
                            )
                        ],
                    ),
                )
            ]
        )
        kube, core = _kube(settings, list_namespaced_pod=pods)

        result = _call(kubernetes.list_pods_tool(kube))

        assert _text(result) == "Pod: api-1 | Status: Running | Restarts: 2"
        assert core.calls == [
            ("list_namespaced_pod", ("default",), {"_request_timeout": 30})
        ]

    def test_deployments_use_the_apps_api(self, settings: Settings) -> None:
        """Deployments are read from the apps group with ready/desired replicas."""
        apps = _FakeApi(
            list_namespaced_deployment={
                "items": [
                    {
                        "metadata": {"name": "api"},
                        "spec": {"replicas": 3},
                        "status": {"replicas": 2},
                    }
                ]
            }
        )
        core = _FakeApi()
        kube = kubernetes.KubernetesClient(settings, core_api=core, apps_api=apps)

        result = _call(kubernetes.get_deployments_tool(kube), namespace="prod")

        assert _text(result) == "Name: api | Replicas: 2/3"
        assert apps.calls[0][:2] == ("list_namespaced_deployment", ("prod",))
        assert core.calls == []

    def test_get_logs_passes_tail(self, settings: Settings) -> None:
        """Log requests forward the namespace and tail length."""
        kube, core = _kube(settings, read_namespaced_pod_log="started\nready\n")

        result = _call(kubernetes.get_logs_tool(kube), namespace="prod", podName="api-1")

        assert _text(result) == "started\nready\n"
        assert core.calls == [
            (
                "read_namespaced_pod_log",
                ("api-1", "prod"),
                {"tail_lines": 50, "_request_timeout": 30},
            )
        ]

    def test_secrets_expose_metadata_only(self, settings: Settings) -> None:
        """Secret values never appear in the output."""
        secrets = V1SecretList(
            items=[
                V1Secret(
                    metadata=V1ObjectMeta(name="db-creds"),
                    type="Opaque",
                    data={"password": "c2VjcmV0"},
                )
            ]
        )
        kube, _ = _kube(settings, list_namespaced_secret=secrets)

        text = _text(_call(kubernetes.get_secrets_metadata_tool(kube)))

        assert text == "Name: db-creds | Type: Opaque"
        assert "c2VjcmV0" not in text

    def test_api_errors_are_reported(self, settings: Settings) -> None:
        """API errors become failures carrying the server's message."""
        not_found = ApiException(status=404, reason="Not Found")
        not_found.body = json.dumps({"kind": "Status", "message": 'pods "api-1" not found'})
        kube, _ = _kube(
            settings,
            read_namespaced_pod=not_found,
            list_namespaced_service=ApiException(status=500, reason="Internal Server Error"),
        )

        described = _call(kubernetes.describe_pod_tool(kube), namespace="x", podName="api-1")
        listed = _call(kubernetes.get_services_tool(kube))

        assert described == ToolFailure('K8s Error: pods "api-1" not found')
        assert listed == ToolFailure("K8s Error: (500) Internal Server Error")

    def test_empty_namespace_list(self, settings: Settings) -> None:
        """An empty cluster answer has a dedicated message."""
        kube, _ = _kube(settings, list_namespace=V1NamespaceList(items=[]))

        result = _call(kubernetes.list_namespaces_tool(kube))

        assert _text(result) == "No namespaces found."

    def test_connects_once_with_configured_context(
        self, monkeypatch: pytest.MonkeyPatch, settings: Settings
    ) -> None:
        """The kubeconfig context is honored and the connection is reused."""
        contexts: list[str | None] = []

        def new_client(context: str | None = None) -> ApiClient:
            contexts.append(context)
            return ApiClient()

        monkeypatch.setattr(kubernetes.config, "new_client_from_config", new_client)
        kube = kubernetes.KubernetesClient(
            settings.model_copy(update={"kube_context": "staging"})
        )

        assert isinstance(kube.core, CoreV1Api)
        assert isinstance(kube.apps, AppsV1Api)
        assert kube.core is kube.core
        assert contexts == ["staging"]

    def test_missing_cluster_is_reported(
        self, monkeypatch: pytest.MonkeyPatch, settings: Settings
    ) -> None:
        """Without kubeconfig or service account, calls fail instead of raising."""

        def no_kubeconfig(context: str | None = None) -> ApiClient:
            raise ConfigException("Invalid kube-config file. No configuration found.")

        def not_in_cluster(client_configuration: Any = None) -> None:
            raise ConfigException("Service host/port is not set.")

        monkeypatch.setattr(kubernetes.config, "new_client_from_config", no_kubeconfig)
        monkeypatch.setattr(kubernetes.config, "load_incluster_config", not_in_cluster)

        result = _call(
            kubernetes.list_namespaces_tool(kubernetes.KubernetesClient(settings))
        )

        assert result == ToolFailure("K8s Error: Service host/port is not set.")
