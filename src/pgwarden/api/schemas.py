from typing import Any

from pydantic import BaseModel, Field

from pgwarden._types import ToolDefinition


# ── Request / Response ────────────────────────────────────────────────
class ToolCallRequest(BaseModel):
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Tool arguments matching the tool's input schema.",
    )


class ToolListResponse(BaseModel):
    tools: list[ToolDefinition]
