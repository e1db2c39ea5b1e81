"""Newline-delimited JSON-RPC 2.0 transport over standard input/output.

Each line read is one complete request; each response is written as one line
and flushed under a lock, so slow or failing handlers can never interleave or
split frames. Requests are processed concurrently up to ``max_in_flight`` and
paired with their responses by JSON-RPC ``id``.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

import anyio
import structlog

from sb_mcp.dispatcher import Dispatcher
from sb_mcp.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    MCPError,
    ProtocolError,
    raise_protocol_error,
)
from sb_mcp.registry import ToolRegistry
from sb_mcp.tools import ToolRequest

logger = structlog.wrap_logger(logging.getLogger(__name__))

SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

_MISSING = object()


def _error_response(request_id: Any, error: MCPError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def _result_response(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


class StdioTransport:
    """Serve a tool registry to a host process over a line-framed stream."""

    def __init__(
        self,
        registry: ToolRegistry,
        dispatcher: Dispatcher,
        *,
        server_name: str,
        server_version: str,
        instructions: str | None = None,
        max_in_flight: int = 8,
    ) -> None:
        """Create a transport bound to ``registry`` and ``dispatcher``."""
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self.registry = registry
        self.dispatcher = dispatcher
        self.server_name = server_name
        self.server_version = server_version
        self.instructions = instructions
        self.max_in_flight = max_in_flight

    async def serve(
        self, reader: TextIO | None = None, writer: TextIO | None = None
    ) -> None:
        """Read requests until the input stream closes.

        Returns once end of input is reached and every in-flight request has
        been answered.
        """
        reader = reader if reader is not None else sys.stdin
        writer = writer if writer is not None else sys.stdout
        self.registry.freeze()
        write_lock = anyio.Lock()
        limiter = anyio.CapacityLimiter(self.max_in_flight)
        # Handlers share the default thread pool; the reader must not queue behind them.
        read_limiter = anyio.CapacityLimiter(1)

        async def process(line: str, token: object) -> None:
            try:
                response = await self.handle_line(line)
                if response is not None:
                    frame = json.dumps(response, default=str) + "\n"
                    async with write_lock:
                        writer.write(frame)
                        writer.flush()
            finally:
                limiter.release_on_behalf_of(token)

        logger.info("Serving tools over stdio", tool_count=len(self.registry))
        async with anyio.create_task_group() as task_group:
            while True:
                line = await anyio.to_thread.run_sync(
                    reader.readline, limiter=read_limiter
                )
                if not line:
                    break
                if not line.strip():
                    continue
                token = object()
                await limiter.acquire_on_behalf_of(token)
                task_group.start_soon(process, line, token)
        logger.info("Input stream closed; transport stopped")

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Decode one frame and return the response to write, if any."""
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.warning("Discarding unparseable frame", error=str(exc))
            return _error_response(
                None, ProtocolError(PARSE_ERROR, f"Parse error: {exc.msg}")
            )
        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Handle a decoded JSON-RPC message.

        Returns:
            The response object, or ``None`` for notifications.

        """
        if not isinstance(message, dict):
            return _error_response(
                None, ProtocolError(INVALID_REQUEST, "Request must be a JSON object")
            )

        request_id = message.get("id", _MISSING)
        is_notification = request_id is _MISSING
        if is_notification:
            request_id = None

        try:
            if message.get("jsonrpc") != "2.0":
                raise_protocol_error(INVALID_REQUEST, "jsonrpc must be '2.0'")
            method = message.get("method")
            if not isinstance(method, str):
                raise_protocol_error(INVALID_REQUEST, "method must be a string")
            params = message.get("params")
            if params is None:
                params = {}
            if not isinstance(params, dict):
                raise_protocol_error(INVALID_PARAMS, "params must be an object")
            result = await self._call_method(method, params)
        except MCPError as error:
            logger.info("Protocol error", code=error.code, error=error.message)
            if is_notification:
                return None
            return _error_response(request_id, error)
        except Exception as exc:
            logger.error("Unhandled transport error", error=str(exc), exc_info=True)
            if is_notification:
                return None
            return _error_response(
                request_id, ProtocolError(INTERNAL_ERROR, f"Internal error: {exc}")
            )

        if is_notification:
            return None
        return _result_response(request_id, result)

    async def _call_method(self, method: str, params: dict[str, Any]) -> Any:
        if method == "initialize":
            return self._initialize(params)
        if method.startswith("notifications/"):
            return None
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [tool.metadata() for tool in self.registry.list()]}
        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                raise_protocol_error(INVALID_PARAMS, "tools/call requires a tool name")
            request = ToolRequest(tool_name=name, arguments=params.get("arguments"))
            response = await self.dispatcher.dispatch(request)
            return response.to_dict()
        raise_protocol_error(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested
            if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        client = params.get("clientInfo") or {}
        logger.info(
            "Client initialized",
            client=client.get("name") if isinstance(client, dict) else None,
            protocol_version=version,
        )
        result: dict[str, Any] = {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }
        if self.instructions:
            result["instructions"] = self.instructions
        return result
