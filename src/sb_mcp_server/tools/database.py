"""PostgreSQL inspection tools.

Every call opens its own connection and closes it before returning, whatever
the outcome.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Callable

import asyncpg

from sb_mcp.envelope import JsonContent, ToolResult, failure, success
from sb_mcp.schema import field, optional, record, string
from sb_mcp.tools import ToolDefinition
from sb_mcp_server.config import Settings
from sb_mcp_server.logging_config import get_logger

logger = get_logger(__name__)

Connect = Callable[[str], Awaitable[Any]]

READ_ONLY_PREFIXES = ("select", "explain")

DESCRIBE_SCHEMA_SQL = """
    SELECT table_name, column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_schema = $1
    ORDER BY table_name, ordinal_position
"""

LIST_INDEXES_SQL = """
    SELECT tablename, indexname, indexdef
    FROM pg_indexes
    WHERE schemaname = 'public'
"""


class NotConfiguredError(RuntimeError):
    """Raised when DATABASE_URL is not set."""


class Database:
    """Run queries on short-lived connections."""

    def __init__(self, settings: Settings, connect: Connect | None = None) -> None:
        self._dsn = settings.database_url
        self._connect = connect or asyncpg.connect

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Execute ``query`` and return rows as dictionaries."""
        if not self._dsn:
            raise NotConfiguredError("DATABASE_URL is not set")
        logger.debug("Opening database connection")
        connection = await self._connect(self._dsn)
        try:
            rows = await connection.fetch(query, *args)
        finally:
            await connection.close()
        return [dict(row) for row in rows]


def is_read_only(query: str) -> bool:
    """Return whether ``query`` starts with a read-only statement keyword."""
    return query.strip().lower().startswith(READ_ONLY_PREFIXES)


def select_query_tool(database: Database) -> ToolDefinition:
    """Create the db_select_query tool."""

    async def handler(params: dict[str, Any]) -> ToolResult:
        query = params["query"]
        if not is_read_only(query):
            return failure("Error: Only SELECT or EXPLAIN queries are allowed.")
        try:
            rows = await database.fetch(query)
        except (asyncpg.PostgresError, OSError, NotConfiguredError) as exc:
            return failure(f"DB Error: {exc}")
        return success(JsonContent(rows))

    return ToolDefinition(
        name="sb_backend_db_select_query",
        description="Execute a READ-ONLY SQL query.",
        input_schema=record(query=field(string(), "The SQL query (SELECT only)")),
        handler=handler,
    )


def describe_schema_tool(database: Database) -> ToolDefinition:
    """Create the db_describe_schema tool."""

    async def handler(params: dict[str, Any]) -> ToolResult:
        try:
            rows = await database.fetch(DESCRIBE_SCHEMA_SQL, params["schema"])
        except (asyncpg.PostgresError, OSError, NotConfiguredError) as exc:
            return failure(f"Error describing schema: {exc}")
        return success(JsonContent(rows))

    return ToolDefinition(
        name="sb_backend_db_describe_schema",
        description="Get schema information for tables.",
        input_schema=record(schema=optional(string(), "public", "Schema name")),
        handler=handler,
    )


def list_indexes_tool(database: Database) -> ToolDefinition:
    """Create the db_list_indexes tool."""

    async def handler(params: dict[str, Any]) -> ToolResult:
        query = LIST_INDEXES_SQL
        args: list[Any] = []
        if params["tableName"]:
            query += " AND tablename = $1"
            args.append(params["tableName"])
        try:
            rows = await database.fetch(query, *args)
        except (asyncpg.PostgresError, OSError, NotConfiguredError) as exc:
            return failure(f"Error listing indexes: {exc}")
        return success(JsonContent(rows))

    return ToolDefinition(
        name="sb_backend_db_list_indexes",
        description="List indexes for a specific table or all tables.",
        input_schema=record(
            tableName=optional(string(), description="Table name to filter by")
        ),
        handler=handler,
    )


def explain_query_tool(database: Database) -> ToolDefinition:
    """Create the db_explain_query tool."""

    async def handler(params: dict[str, Any]) -> ToolResult:
        try:
            rows = await database.fetch(f"EXPLAIN {params['query']}")
        except (asyncpg.PostgresError, OSError, NotConfiguredError) as exc:
            return failure(f"Error explaining query: {exc}")
        plan = "\n".join(str(row.get("QUERY PLAN", "")) for row in rows)
        return success(f"Query Plan:\n{plan}")

    return ToolDefinition(
        name="sb_backend_db_explain_query",
        description="Explain the execution plan of a query.",
        input_schema=record(query=field(string(), "The SQL query to explain")),
        handler=handler,
    )
