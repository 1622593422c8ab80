import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import psycopg2
from psycopg2.extensions import connection as PgConnection
from psycopg2.extras import RealDictCursor

from pgwarden._types import ColumnInfo, StatementResult, TableInfo
from pgwarden.errors import (
    DatabaseConnectionError,
    ExecutionError,
    format_database_error,
)
from pgwarden.logger import Logger

logger = Logger(__name__).get_logger()

T = TypeVar("T")

# Driver errors that mean the handle itself is unusable.
_CONNECTION_LEVEL_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)

COLUMNS_QUERY = """
    SELECT table_name, column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = %s
    ORDER BY table_name, ordinal_position;
"""


class ConnectionManager:
    """Owns at most one live PostgreSQL connection for a single session.

    The connection is opened lazily on first use and kept open between calls.
    Access is serialized by a lock so the single handle is never shared by two
    callbacks at once.  A handle that psycopg2 reports as closed, or that
    raises ``InterfaceError`` when used, is discarded and the next acquisition
    opens a fresh one.
    """

    def __init__(
        self,
        database_url: str,
        connect: Callable[..., PgConnection] = psycopg2.connect,
    ) -> None:
        self._database_url = database_url
        self._connect = connect
        self._conn: PgConnection | None = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    def _open(self) -> PgConnection:
        if not self._database_url:
            raise DatabaseConnectionError("DATABASE_URL is not configured")
        try:
            conn = self._connect(self._database_url)
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Could not connect to database: {format_database_error(e)}"
            ) from e
        # Statements commit on their own; a failed one never leaves an aborted
        # transaction on the shared handle.
        conn.autocommit = True
        logger.info("Database connection established")
        return conn

    def _acquire(self) -> PgConnection:
        if self._conn is not None and self._conn.closed:
            logger.warning("Database connection was closed by the server, reconnecting")
            self._conn = None
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def _discard(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None or conn.closed:
            return
        try:
            conn.close()
        except psycopg2.Error as e:
            logger.error(f"Error closing discarded connection: {format_database_error(e)}")

    @contextmanager
    def connection(self) -> Iterator[PgConnection]:
        """Lend the session's connection for the duration of the block."""
        with self._lock:
            conn = self._acquire()
            try:
                yield conn
            except Exception as e:
                # InterfaceError: the handle was already unusable when we used it.
                if conn.closed or isinstance(e, psycopg2.InterfaceError):
                    self._discard()
                raise

    def with_connection(self, callback: Callable[[PgConnection], T]) -> T:
        with self.connection() as conn:
            return callback(conn)

    def execute(self, sql: str, params: Any = None) -> StatementResult:
        """Run a single statement and collect its rows as dicts."""

        def _run(conn: PgConnection) -> StatementResult:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(sql, params)
                rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
                row_count = len(rows) if cursor.description else max(cursor.rowcount, 0)
                return StatementResult(
                    rows=rows,
                    row_count=row_count,
                    status=cursor.statusmessage,
                    returns_rows=cursor.description is not None,
                )

        try:
            return self.with_connection(_run)
        except _CONNECTION_LEVEL_ERRORS as e:
            if self._conn is None:
                raise DatabaseConnectionError(
                    f"Database connection lost: {format_database_error(e)}"
                ) from e
            raise ExecutionError(format_database_error(e)) from e
        except psycopg2.Error as e:
            raise ExecutionError(format_database_error(e)) from e

    def list_tables(self, schema: str = "public") -> list[TableInfo]:
        """Describe every table of *schema*, columns in ordinal order."""
        result = self.execute(COLUMNS_QUERY, (schema,))
        tables: dict[str, TableInfo] = {}
        for row in result.rows:
            table = tables.setdefault(
                row["table_name"], TableInfo(name=row["table_name"], schema=schema)
            )
            table.columns.append(
                ColumnInfo(
                    name=row["column_name"],
                    type=row["data_type"],
                    nullable=row["is_nullable"] == "YES",
                    default=row["column_default"],
                )
            )
        return list(tables.values())

    def cleanup(self) -> None:
        """Close the connection if one is open.  Safe to call repeatedly."""
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            if not conn.closed:
                conn.close()
            logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error during database cleanup: {format_database_error(e)}")
