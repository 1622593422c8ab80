import re
import textwrap
from typing import Any

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

# -- Tool names ------------------------------------------------------------

LIST_TABLES_TOOL = "listTables"
QUERY_DATABASE_TOOL = "queryDatabase"
EXECUTE_DATABASE_TOOL = "executeDatabase"


# -- Tool descriptions -----------------------------------------------------

LIST_TABLES_DESCRIPTION = (
    "Get a list of all tables in the database along with their column information. "
    "Use this first to understand the database structure before querying."
)

QUERY_DATABASE_DESCRIPTION = (
    "Execute a read-only SQL query against the PostgreSQL database. "
    "This tool only allows SELECT statements and other read operations. "
    "All authenticated users can use this tool."
)

EXECUTE_DATABASE_DESCRIPTION = (
    "Execute any SQL statement against the PostgreSQL database, including INSERT, "
    "UPDATE, DELETE, and DDL operations. This tool is restricted to specific users "
    "and can perform write transactions. **USE WITH CAUTION** - this can modify or "
    "delete data."
)

LIST_TABLES_INPUT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}

QUERY_DATABASE_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "sql": {
            "type": "string",
            "description": "The SQL query to execute. Only SELECT statements and read operations are allowed.",
        }
    },
    "required": ["sql"],
}

EXECUTE_DATABASE_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "sql": {
            "type": "string",
            "description": "The SQL statement to execute. Can be any valid SQL including INSERT, UPDATE, DELETE, CREATE, etc.",
        }
    },
    "required": ["sql"],
}

WRITE_REJECTED_MESSAGE = (
    "Write operations are not allowed with this tool. Use the `executeDatabase` "
    "tool if you have write permissions (requires allow-listed username access)."
)

LIST_TABLES_NOTE = textwrap.dedent("""\
    **Note:** Use the `queryDatabase` tool to run SELECT queries, or `executeDatabase` \
    tool for write operations (if you have write access).""")


class Settings(BaseSettings):
    DATABASE_URL: str

    # Comma or whitespace separated list of logins allowed to write.
    ALLOWED_USERNAMES: str = ""

    DEFAULT_SCHEMA: str = "public"

    SESSION_IDLE_TIMEOUT: float = 300.0

    SESSION_SWEEP_INTERVAL: float = 60.0

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def allowed_usernames(self) -> frozenset[str]:
        # Exact handles: no case folding, the provider's login is case-sensitive.
        return frozenset(
            name for name in re.split(r"[,\s]+", self.ALLOWED_USERNAMES) if name
        )


settings = Settings()  # type: ignore[call-arg]
