import asyncio
import json
from dataclasses import asdict
from typing import Any

from pgwarden._types import Identity, OperationClass, ToolDefinition, ToolResult, TextContent
from pgwarden.auth import AccessPolicy
from pgwarden.classifier import classify_sql, ensure_valid_sql
from pgwarden.config import (
    EXECUTE_DATABASE_DESCRIPTION,
    EXECUTE_DATABASE_INPUT_SCHEMA,
    EXECUTE_DATABASE_TOOL,
    LIST_TABLES_DESCRIPTION,
    LIST_TABLES_INPUT_SCHEMA,
    LIST_TABLES_NOTE,
    LIST_TABLES_TOOL,
    QUERY_DATABASE_DESCRIPTION,
    QUERY_DATABASE_INPUT_SCHEMA,
    QUERY_DATABASE_TOOL,
    WRITE_REJECTED_MESSAGE,
)
from pgwarden.database import ConnectionManager
from pgwarden.errors import AuthorizationError, ValidationError, format_database_error
from pgwarden.logger import Logger

logger = Logger(__name__).get_logger()


def text_result(text: str) -> ToolResult:
    return ToolResult(content=[TextContent(text=text)])


def error_result(text: str) -> ToolResult:
    return ToolResult(content=[TextContent(text=text)], is_error=True)


def _to_json(value: Any) -> str:
    # Dates, decimals, UUIDs and the like come back from the driver as objects.
    return json.dumps(value, indent=2, default=str)


class DatabaseTools:
    """The tool surface of a single session.

    Every public tool returns a :class:`ToolResult`; failures are reported
    through ``is_error`` instead of being raised to the transport.
    """

    def __init__(
        self,
        identity: Identity,
        access_policy: AccessPolicy,
        connections: ConnectionManager,
        schema: str = "public",
    ) -> None:
        self._identity = identity
        self._access_policy = access_policy
        self._connections = connections
        self._schema = schema

    @property
    def identity(self) -> Identity:
        return self._identity

    def list_tools(self) -> list[ToolDefinition]:
        """Tools advertised to this session; write tooling only when allowed."""
        tools = [
            ToolDefinition(
                name=LIST_TABLES_TOOL,
                description=LIST_TABLES_DESCRIPTION,
                input_schema=LIST_TABLES_INPUT_SCHEMA,
            ),
            ToolDefinition(
                name=QUERY_DATABASE_TOOL,
                description=QUERY_DATABASE_DESCRIPTION,
                input_schema=QUERY_DATABASE_INPUT_SCHEMA,
            ),
        ]
        if self._access_policy.can_write(self._identity):
            tools.append(
                ToolDefinition(
                    name=EXECUTE_DATABASE_TOOL,
                    description=EXECUTE_DATABASE_DESCRIPTION,
                    input_schema=EXECUTE_DATABASE_INPUT_SCHEMA,
                )
            )
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        arguments = arguments or {}
        if name == LIST_TABLES_TOOL:
            return await self.list_tables()
        if name in (QUERY_DATABASE_TOOL, EXECUTE_DATABASE_TOOL):
            sql = arguments.get("sql")
            if not isinstance(sql, str):
                return error_result(f"Invalid arguments for {name}: 'sql' must be a string.")
            if name == QUERY_DATABASE_TOOL:
                return await self.query_database(sql)
            return await self.execute_database(sql)
        return error_result(f"Unknown tool: {name}")

    async def list_tables(self) -> ToolResult:
        try:
            tables = await asyncio.to_thread(self._connections.list_tables, self._schema)
            table_info = [asdict(table) for table in tables]
            return text_result(
                f"**Database Tables and Schema**\n\n{_to_json(table_info)}\n\n"
                f"**Total tables found:** {len(table_info)}\n\n{LIST_TABLES_NOTE}"
            )
        except Exception as e:
            logger.error(f"listTables error: {format_database_error(e)}")
            return error_result(f"Error retrieving database schema: {format_database_error(e)}")

    async def query_database(self, sql: str) -> ToolResult:
        try:
            ensure_valid_sql(sql)

            if classify_sql(sql) is OperationClass.WRITE:
                logger.info(f"Rejected write statement on read-only tool for {self._identity.login}")
                return error_result(WRITE_REJECTED_MESSAGE)

            logger.debug(f"Running read query for {self._identity.login}: {sql}")
            result = await asyncio.to_thread(self._connections.execute, sql)
            return text_result(
                f"**Query Results**\n```sql\n{sql}\n```\n\n"
                f"**Results:**\n```json\n{_to_json(result.rows)}\n```\n\n"
                f"**Rows returned:** {result.row_count}"
            )
        except ValidationError as e:
            return error_result(f"Invalid SQL query: {e}")
        except Exception as e:
            logger.error(f"queryDatabase error: {format_database_error(e)}")
            return error_result(f"Database query error: {format_database_error(e)}")

    async def execute_database(self, sql: str) -> ToolResult:
        try:
            self._access_policy.require_write(self._identity)

            ensure_valid_sql(sql)

            # Computed for reporting and audit only, never to block.
            operation = classify_sql(sql)
            result = await asyncio.to_thread(self._connections.execute, sql)

            logger.info(
                f"{operation.label} executed by {self._identity.login}"
                f" ({result.status or 'no status'})"
            )
            outcome = (
                "**⚠️ Database was modified**"
                if operation is OperationClass.WRITE
                else f"**Rows returned:** {result.row_count}"
            )
            payload: Any = (
                result.rows
                if result.returns_rows
                else {"status": result.status, "rowCount": result.row_count}
            )
            return text_result(
                f"**{operation.label} Executed Successfully**\n```sql\n{sql}\n```\n\n"
                f"**Results:**\n```json\n{_to_json(payload)}\n```\n\n"
                f"{outcome}\n\n"
                f"**Executed by:** {self._identity.login} ({self._identity.display_name})"
            )
        except AuthorizationError as e:
            logger.warning(f"executeDatabase refused: {e}")
            return error_result(f"Authorization error: {e}")
        except ValidationError as e:
            return error_result(f"Invalid SQL statement: {e}")
        except Exception as e:
            logger.error(f"executeDatabase error: {format_database_error(e)}")
            return error_result(f"Database execution error: {format_database_error(e)}")
