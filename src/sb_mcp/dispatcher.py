"""Resolve, validate and invoke tools, normalizing every outcome to an envelope."""

from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import Any

import anyio
import structlog

from sb_mcp.envelope import ToolFailure, ToolResponse, ToolResult, ToolSuccess
from sb_mcp.errors import SchemaValidationError
from sb_mcp.registry import ToolRegistry
from sb_mcp.tools import ToolDefinition, ToolRequest

logger = structlog.wrap_logger(logging.getLogger(__name__))


class Dispatcher:
    """Execute tool requests against a :class:`ToolRegistry`.

    Unknown tool names raise :class:`~sb_mcp.errors.ToolNotFoundError`; every
    other outcome, including validation failures, handler failures, raised
    exceptions and timeouts, is returned as a :class:`ToolResponse`.
    """

    def __init__(
        self, registry: ToolRegistry, *, call_timeout: float | None = None
    ) -> None:
        """Create a dispatcher.

        Args:
            registry: Registry used to resolve tool names.
            call_timeout: Seconds a single handler may run before the call is
                reported as failed. ``None`` disables the limit.

        """
        self.registry = registry
        self.call_timeout = call_timeout

    async def dispatch(self, request: ToolRequest) -> ToolResponse:
        """Run a single tool request.

        Raises:
            ToolNotFoundError: If the tool name is not registered.

        Returns:
            The response envelope for the call.

        """
        tool = self.registry.lookup(request.tool_name)
        log = logger.bind(tool=tool.name)

        try:
            arguments = tool.validate(request.arguments)
        except SchemaValidationError as error:
            log.info("Rejected tool arguments", violations=len(error.violations))
            return ToolResponse.error(str(error))

        started = time.perf_counter()
        result: Any = None
        try:
            with anyio.move_on_after(self.call_timeout) as scope:
                result = await self._invoke(tool, arguments)
        except Exception as exc:
            log.error("Tool handler raised", error=str(exc), exc_info=True)
            return ToolResponse.error(f"{type(exc).__name__}: {exc}")
        if scope.cancelled_caught:
            log.warning("Tool call timed out", timeout=self.call_timeout)
            return ToolResponse.error(
                f"Tool '{tool.name}' timed out after {self.call_timeout:g} seconds"
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if isinstance(result, ToolSuccess):
            log.info("Tool call succeeded", latency_ms=elapsed_ms)
            return ToolResponse.ok(result.content)
        if isinstance(result, ToolFailure):
            log.info("Tool call failed", latency_ms=elapsed_ms, error=result.message)
            return ToolResponse.error(result.message)

        log.error("Tool returned unsupported result", result_type=type(result).__name__)
        return ToolResponse.error(
            f"Tool '{tool.name}' returned an unsupported result type "
            f"'{type(result).__name__}'"
        )

    async def _invoke(self, tool: ToolDefinition, arguments: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(tool.handler):
            return await tool.handler(arguments)
        result: ToolResult = await anyio.to_thread.run_sync(
            functools.partial(tool.handler, arguments), abandon_on_cancel=True
        )
        if inspect.isawaitable(result):
            return await result
        return result

    def dispatch_sync(self, request: ToolRequest) -> ToolResponse:
        """Run :meth:`dispatch` to completion in a fresh event loop."""
        return anyio.run(self.dispatch, request)
