from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class OperationClass(Enum):
    READ = "read"
    WRITE = "write"

    @property
    def label(self) -> str:
        return "Read Operation" if self is OperationClass.READ else "Write Operation"


class Permission(Enum):
    READ = "read"
    WRITE = "write"


@dataclass(frozen=True)
class Identity:
    """Verified caller context handed over by the identity provider."""

    login: str
    name: str = ""
    email: str = ""
    access_token: str = field(default="", repr=False)

    @property
    def display_name(self) -> str:
        return self.name or self.login


@dataclass(frozen=True)
class ValidationVerdict:
    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationVerdict":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str) -> "ValidationVerdict":
        return cls(is_valid=False, error=reason)


@dataclass
class StatementResult:
    rows: list[dict[str, Any]]
    row_count: int
    status: str | None = None
    # False for statements without a result set (INSERT without RETURNING, DDL).
    returns_rows: bool = True


@dataclass
class ColumnInfo:
    name: str
    type: str
    nullable: bool
    default: str | None = None


@dataclass
class TableInfo:
    name: str
    schema: str
    columns: list[ColumnInfo] = field(default_factory=list)


# -- Tool envelope ---------------------------------------------------------


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")


class ToolDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: dict[str, Any] = Field(alias="inputSchema")
