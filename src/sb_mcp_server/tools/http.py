"""Generic HTTP and API response tools."""

from __future__ import annotations

import json
import time
from typing import Any

import httpx

from sb_mcp.envelope import JsonContent, ToolResult, failure, success
from sb_mcp.schema import any_value, enum, field, list_of, map_of, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.tools.common import http_client

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def http_request_tool(
    settings: Settings, transport: httpx.BaseTransport | None = None
) -> ToolDefinition:
    """Create the http_request tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        request_kwargs: dict[str, Any] = {"headers": params["headers"]}
        body = params["body"]
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["content"] = str(body)
        try:
            with http_client(settings, transport=transport) as client:
                response = client.request(params["method"], params["url"], **request_kwargs)
        except httpx.HTTPError as exc:
            return failure(f"HTTP Error: {exc}")
        payload = {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "data": _response_body(response),
        }
        if response.is_error:
            details = json.dumps(payload, indent=2)
            return failure(f"HTTP Error: {response.status_code}\n{details}")
        return success(JsonContent(payload))

    return ToolDefinition(
        name="sb_backend_http_request",
        description="Make an HTTP request.",
        input_schema=record(
            method=field(enum(*HTTP_METHODS), "HTTP Method"),
            url=field(string(), "URL"),
            headers=optional(map_of(string()), description="Headers"),
            body=optional(any_value(), description="Body (for POST/PUT)"),
        ),
        handler=handler,
    )


def validate_api_response_tool() -> ToolDefinition:
    """Create the validate_api_response tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        try:
            data = json.loads(params["responseJson"])
        except json.JSONDecodeError as exc:
            return failure(f"Invalid JSON: {exc}")
        if not isinstance(data, dict):
            return failure("Validation Failed. The root value is not an object.")
        missing = [key for key in params["requiredKeys"] if key not in data]
        if missing:
            return failure(f"Validation Failed. Missing keys: {', '.join(missing)}")
        return success("Validation Passed.")

    return ToolDefinition(
        name="sb_backend_validate_api_response",
        description="Validate if a JSON response matches a simplified schema/structure.",
        input_schema=record(
            responseJson=field(string(), "The JSON string to validate"),
            requiredKeys=field(
                list_of(string()), "List of keys that must exist in the root object"
            ),
        ),
        handler=handler,
    )


def check_health_endpoint_tool(
    settings: Settings, transport: httpx.BaseTransport | None = None
) -> ToolDefinition:
    """Create the check_health_endpoint tool."""

    def handler(params: dict[str, Any]) -> ToolResult:
        started = time.perf_counter()
        try:
            with http_client(settings, transport=transport) as client:
                response = client.get(params["url"])
                response.raise_for_status()
        except httpx.HTTPError as exc:
            return failure(f"Health Check Failed: {exc}")
        duration_ms = int((time.perf_counter() - started) * 1000)
        return success(
            f"Status: {response.status_code} {response.reason_phrase}\n"
            f"Duration: {duration_ms}ms\n"
            f"Data: {json.dumps(_response_body(response), default=str)}"
        )

    return ToolDefinition(
        name="sb_backend_check_health_endpoint",
        description="Check a health endpoint (GET request).",
        input_schema=record(url=field(string(), "Health URL")),
        handler=handler,
    )
