"""Kubernetes inspection tools backed by the official Python client."""

from __future__ import annotations

import json
from typing import Any, Callable

import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from sb_mcp.envelope import JsonContent, ToolResult, failure, success
from sb_mcp.schema import field, integer, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import lines_or

_NAMESPACE = optional(string(), "default", "Kubernetes namespace")


class KubernetesClient:
    """Read-only access to the cluster selected by ``KUBE_CONTEXT``.

    The connection is made on first use from the local kubeconfig, falling
    back to the in-cluster service account, so a missing cluster only fails
    the calls that need it. Resources are returned as plain dictionaries in
    the API's own camelCase layout.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        core_api: client.CoreV1Api | None = None,
        apps_api: client.AppsV1Api | None = None,
    ) -> None:
        self._settings = settings
        self._core_api = core_api
        self._apps_api = apps_api
        self._api_client: client.ApiClient | None = None
        self._serializer = client.ApiClient()

    def _connect(self) -> client.ApiClient:
        if self._api_client is None:
            try:
                self._api_client = config.new_client_from_config(
                    context=self._settings.kube_context
                )
            except config.ConfigException:
                configuration = client.Configuration()
                config.load_incluster_config(client_configuration=configuration)
                self._api_client = client.ApiClient(configuration)
        return self._api_client

    @property
    def core(self) -> client.CoreV1Api:
        if self._core_api is None:
            self._core_api = client.CoreV1Api(self._connect())
        return self._core_api

    @property
    def apps(self) -> client.AppsV1Api:
        if self._apps_api is None:
            self._apps_api = client.AppsV1Api(self._connect())
        return self._apps_api

    def _to_dict(self, obj: Any) -> Any:
        return self._serializer.sanitize_for_serialization(obj)

    def list_namespaced(self, kind: str, namespace: str) -> dict[str, Any]:
        """List one resource kind, e.g. ``pod`` or ``config_map``, in ``namespace``."""
        api: Any = self.apps if kind == "deployment" else self.core
        listing = getattr(api, f"list_namespaced_{kind}")(
            namespace, _request_timeout=self._settings.command_timeout_seconds
        )
        return self._to_dict(listing)

    def list_namespaces(self) -> dict[str, Any]:
        return self._to_dict(
            self.core.list_namespace(
                _request_timeout=self._settings.command_timeout_seconds
            )
        )

    def read_pod(self, name: str, namespace: str) -> dict[str, Any]:
        return self._to_dict(
            self.core.read_namespaced_pod(
                name, namespace, _request_timeout=self._settings.command_timeout_seconds
            )
        )

    def read_pod_log(self, name: str, namespace: str, tail_lines: int) -> str:
        return self.core.read_namespaced_pod_log(
            name,
            namespace,
            tail_lines=tail_lines,
            _request_timeout=self._settings.command_timeout_seconds,
        )


_ERRORS = (ApiException, config.ConfigException, urllib3.exceptions.HTTPError, OSError)


def _api_message(exc: ApiException) -> str:
    try:
        return json.loads(exc.body)["message"]
    except (TypeError, ValueError, KeyError):
        return f"({exc.status}) {exc.reason}"


def _k8s_error(exc: Exception) -> ToolResult:
    message = _api_message(exc) if isinstance(exc, ApiException) else str(exc)
    return failure(f"K8s Error: {message}")


def _list_tool(
    kube: KubernetesClient,
    *,
    name: str,
    description: str,
    kind: str,
    render: Callable[[dict[str, Any]], str],
    empty: str,
) -> ToolDefinition:
    """Create a tool listing one namespaced resource kind."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            data = kube.list_namespaced(kind, params["namespace"])
        except _ERRORS as exc:
            return _k8s_error(exc)
        return success(lines_or([render(item) for item in data.get("items", [])], empty))

    return ToolDefinition(
        name=name,
        description=description,
        input_schema=record(namespace=_NAMESPACE),
        handler=handler,
    )


def _render_pod(pod: dict[str, Any]) -> str:
    status = pod.get("status") or {}
    containers = status.get("containerStatuses") or [{}]
    restarts = containers[0].get("restartCount", 0)
    return (
        f"Pod: {pod['metadata']['name']} | Status: {status.get('phase')} | "
        f"Restarts: {restarts}"
    )


def _render_deployment(deployment: dict[str, Any]) -> str:
    ready = (deployment.get("status") or {}).get("replicas")
    desired = (deployment.get("spec") or {}).get("replicas")
    return f"Name: {deployment['metadata']['name']} | Replicas: {ready}/{desired}"


def _render_service(service: dict[str, Any]) -> str:
    spec = service.get("spec") or {}
    return (
        f"Name: {service['metadata']['name']} | Type: {spec.get('type')} | "
        f"ClusterIP: {spec.get('clusterIP')}"
    )


def _render_configmap(configmap: dict[str, Any]) -> str:
    keys = ", ".join(sorted(configmap.get("data") or {}))
    return f"Name: {configmap['metadata']['name']} | Keys: {keys}"


def _render_secret(secret: dict[str, Any]) -> str:
    return f"Name: {secret['metadata']['name']} | Type: {secret.get('type')}"


def list_pods_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_list_pods tool."""
    return _list_tool(
        kube,
        name="sb_backend_k8s_list_pods",
        description="List pods in a specific namespace.",
        kind="pod",
        render=_render_pod,
        empty="No pods found.",
    )


def get_deployments_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_get_deployments tool."""
    return _list_tool(
        kube,
        name="sb_backend_k8s_get_deployments",
        description="List deployments in a namespace.",
        kind="deployment",
        render=_render_deployment,
        empty="No deployments found.",
    )


def get_services_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_get_services tool."""
    return _list_tool(
        kube,
        name="sb_backend_k8s_get_services",
        description="List services in a namespace.",
        kind="service",
        render=_render_service,
        empty="No services found.",
    )


def get_configmaps_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_get_configmaps tool."""
    return _list_tool(
        kube,
        name="sb_backend_k8s_get_configmaps",
        description="List ConfigMaps in a namespace.",
        kind="config_map",
        render=_render_configmap,
        empty="No ConfigMaps found.",
    )


def get_secrets_metadata_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_get_secrets_metadata tool; secret values are never returned."""
    return _list_tool(
        kube,
        name="sb_backend_k8s_get_secrets_metadata",
        description="List Secrets in a namespace (Metadata only).",
        kind="secret",
        render=_render_secret,
        empty="No secrets found.",
    )


def list_namespaces_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_list_namespaces tool."""

    def handler(_: dict[str, Any]) -> ToolResult:
        try:
            data = kube.list_namespaces()
        except _ERRORS as exc:
            return _k8s_error(exc)
        names = [item["metadata"]["name"] for item in data.get("items", [])]
        return success(lines_or(names, "No namespaces found."))

    return ToolDefinition(
        name="sb_backend_k8s_list_namespaces",
        description="List all namespaces.",
        input_schema=record(),
        handler=handler,
    )


def get_logs_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_get_logs tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            logs = kube.read_pod_log(
                params["podName"], params["namespace"], params["tailLines"]
            )
        except _ERRORS as exc:
            return _k8s_error(exc)
        return success(logs)

    return ToolDefinition(
        name="sb_backend_k8s_get_logs",
        description="Get logs from a specific pod.",
        input_schema=record(
            namespace=_NAMESPACE,
            podName=field(string(), "Pod name"),
            tailLines=optional(integer(), 50, "Number of trailing log lines"),
        ),
        handler=handler,
    )


def describe_pod_tool(kube: KubernetesClient) -> ToolDefinition:
    """Create the k8s_describe_pod tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            pod = kube.read_pod(params["podName"], params["namespace"])
        except _ERRORS as exc:
            return _k8s_error(exc)
        return success(JsonContent(pod))

    return ToolDefinition(
        name="sb_backend_k8s_describe_pod",
        description="Get details of a specific pod.",
        input_schema=record(namespace=_NAMESPACE, podName=field(string(), "Pod name")),
        handler=handler,
    )
