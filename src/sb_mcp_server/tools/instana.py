"""Instana observability tools."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from sb_mcp.envelope import JsonContent, ToolResult, failure, success
from sb_mcp.schema import field, integer, list_of, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import describe_http_error, http_client, lines_or

WINDOW_SIZE_MS = 300_000
MAX_SERVICES = 10

_SERVICE_ID = field(string(), "Service ID")


class InstanaNotConfigured(RuntimeError):
    """Raised when the Instana API URL or token is missing."""


class InstanaClient:
    """Read-only Instana REST client; one HTTP client per call."""

    def __init__(
        self, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> None:
        self._settings = settings
        self._transport = transport

    def get(self, path: str, params: Any = None) -> Any:
        settings = self._settings
        if not settings.instana_api_url or not settings.instana_api_token:
            raise InstanaNotConfigured(
                "INSTANA_API_URL or INSTANA_API_TOKEN env var is not set."
            )
        with http_client(
            settings,
            base_url=settings.instana_api_url.rstrip("/"),
            transport=self._transport,
            headers={"Authorization": f"apiToken {settings.instana_api_token}"},
        ) as client:
            response = client.get(path, params=params)
            response.raise_for_status()
            return response.json()


def _instana_error(exc: Exception) -> ToolResult:
    if isinstance(exc, httpx.HTTPError):
        return failure(f"Instana Error: {describe_http_error(exc)}")
    return failure(f"Instana Error: {exc}")


_ERRORS = (httpx.HTTPError, InstanaNotConfigured)


def _json_tool(
    instana: InstanaClient,
    *,
    name: str,
    description: str,
    schema: Any,
    request: Any,
) -> ToolDefinition:
    """Create a tool that returns the raw JSON of a single Instana GET."""

    def handler(params: dict[str, Any]) -> ToolResult:
        path, query = request(params)
        try:
            data = instana.get(path, params=query)
        except _ERRORS as exc:
            return _instana_error(exc)
        return success(JsonContent(data))

    return ToolDefinition(
        name=name, description=description, input_schema=schema, handler=handler
    )


def _service_metrics_path(service_id: str) -> str:
    service = quote(service_id, safe="")
    return f"/api/application-monitoring/metrics/services/{service}/metrics"


def get_alerts_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_get_alerts tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            data = instana.get("/api/events", params={"state": "OPEN"})
        except _ERRORS as exc:
            return _instana_error(exc)
        events = data if isinstance(data, list) else []
        if not events:
            return success("No open alerts found in Instana.")
        lines = [
            f"[{event.get('severity')}] "
            f"{event.get('title') or event.get('problemDescription')} "
            f"(Start: {event.get('startTime')})"
            for event in events[: params["limit"]]
        ]
        return success("\n".join(lines))

    return ToolDefinition(
        name="sb_backend_instana_get_alerts",
        description="Get active problems/alerts from Instana.",
        input_schema=record(limit=optional(integer(), 5, "Maximum alerts to return")),
        handler=handler,
    )


def list_services_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_list_services tool."""

    def handler(_: dict[str, Any]) -> ToolResult:
        try:
            data = instana.get(
                "/api/application-monitoring/services",
                params={"windowSize": WINDOW_SIZE_MS},
            )
        except _ERRORS as exc:
            return _instana_error(exc)
        items = data.get("items") if isinstance(data, dict) else None
        lines = [
            f"ID: {service.get('id')} | Label: {service.get('label')}"
            for service in (items or [])[:MAX_SERVICES]
        ]
        return success(lines_or(lines, "No services found."))

    return ToolDefinition(
        name="sb_backend_instana_list_services",
        description="List application services.",
        input_schema=record(),
        handler=handler,
    )


def service_health_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_service_health tool."""
    return _json_tool(
        instana,
        name="sb_backend_instana_service_health",
        description="Get health/metrics for a service.",
        schema=record(serviceId=_SERVICE_ID),
        request=lambda params: (
            _service_metrics_path(params["serviceId"]),
            [("metric", "calls"), ("metric", "errors"), ("windowSize", WINDOW_SIZE_MS)],
        ),
    )


def service_metrics_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_service_metrics tool."""
    return _json_tool(
        instana,
        name="sb_backend_instana_service_metrics",
        description="Get specific metrics for a service.",
        schema=record(
            serviceId=_SERVICE_ID,
            metrics=field(list_of(string()), "Metrics to fetch (e.g. calls, latency)"),
        ),
        request=lambda params: (
            _service_metrics_path(params["serviceId"]),
            [("metric", metric) for metric in params["metrics"]]
            + [("windowSize", WINDOW_SIZE_MS)],
        ),
    )


def service_traces_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_service_traces tool."""
    return _json_tool(
        instana,
        name="sb_backend_instana_service_traces",
        description="Get recent traces for a service.",
        schema=record(serviceId=_SERVICE_ID),
        request=lambda params: (
            "/api/application-monitoring/analyze/traces",
            {"serviceId": params["serviceId"], "windowSize": WINDOW_SIZE_MS},
        ),
    )


def incident_list_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_incident_list tool."""
    return _json_tool(
        instana,
        name="sb_backend_instana_incident_list",
        description="Get list of incidents.",
        schema=record(),
        request=lambda _: ("/api/events", {"state": "OPEN", "type": "INCIDENT"}),
    )


def alert_details_tool(instana: InstanaClient) -> ToolDefinition:
    """Create the instana_alert_details tool."""
    return _json_tool(
        instana,
        name="sb_backend_instana_alert_details",
        description="Get details of a specific alert/event.",
        schema=record(eventId=field(string(), "Event/Alert ID")),
        request=lambda params: (f"/api/events/{quote(params['eventId'], safe='')}", None),
    )
