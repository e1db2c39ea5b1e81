"""Entry point for the SB backend MCP server."""

from __future__ import annotations

import argparse
import json
import sys

import anyio
from pydantic import ValidationError

from sb_mcp.errors import DuplicateToolError, ToolNotFoundError
from sb_mcp.tools import ToolRequest
from sb_mcp_server.config import get_settings
from sb_mcp_server.fastmcp_adapter import build_fastmcp_app
from sb_mcp_server.logging_config import get_logger, setup_logging
from sb_mcp_server.server import (
    build_dispatcher,
    build_registry,
    build_stdio_transport,
)

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the server CLI."""
    parser = argparse.ArgumentParser(description="SB backend MCP server")
    parser.add_argument(
        "--catalog", action="store_true", help="Print the tool catalog as JSON and exit"
    )
    parser.add_argument("--call", metavar="TOOL", help="Invoke a single tool and exit")
    parser.add_argument(
        "--arguments",
        default="{}",
        help="JSON object of arguments for --call (default: {})",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="Transport used to serve the host (default: stdio)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind host for http/sse")
    parser.add_argument("--port", type=int, default=8000, help="Bind port for http/sse")
    parser.add_argument("--path", default="/mcp", help="Endpoint path for http/sse")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Register tools and serve, or run a one-off catalog/call command."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    setup_logging(args.log_level or settings.log_level, settings.log_json)

    try:
        registry = build_registry(settings)
    except DuplicateToolError as exc:
        logger.error("Tool registration failed", error=str(exc))
        return 1
    dispatcher = build_dispatcher(registry, settings)

    if args.catalog:
        print(json.dumps(registry.to_catalog(), indent=2))
        return 0

    if args.call:
        try:
            arguments = json.loads(args.arguments)
        except json.JSONDecodeError as exc:
            print(f"--arguments is not valid JSON: {exc}", file=sys.stderr)
            return 2
        try:
            response = dispatcher.dispatch_sync(
                ToolRequest(tool_name=args.call, arguments=arguments)
            )
        except ToolNotFoundError as exc:
            print(exc.message, file=sys.stderr)
            return 2
        print(response.to_json())
        return 1 if response.is_error else 0

    if args.transport != "stdio":
        app = build_fastmcp_app(registry, dispatcher, name=settings.server_name)
        app.run(transport=args.transport, host=args.host, port=args.port, path=args.path)
        return 0

    if sys.stdin is None or sys.stdout is None:
        logger.error("Standard input/output is not available; cannot serve over stdio")
        return 1
    transport = build_stdio_transport(registry, dispatcher, settings)
    try:
        anyio.run(transport.serve)
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    except OSError as exc:
        logger.error("Transport failure", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
