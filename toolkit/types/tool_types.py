"""
Tool Types — Pydantic v2 Edition

Type definitions shared by tool providers and clients: the advertised
operation descriptor, the incoming call, the tagged result union and the
provider definition a skill package exports.

Usage:
    from toolkit.types.tool_types import ProviderDefinition, ProviderTool, ToolDefinition
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal, Union

from mcp.types import EmbeddedResource, ImageContent, TextContent
from pydantic import BaseModel, ConfigDict, Field

from toolkit.runtime.errors import ErrorCode, ToolError

log = logging.getLogger("toolkit.types")

ContentBlock = Union[TextContent, ImageContent, EmbeddedResource]

_KNOWN_BLOCK_TYPES = {"text", "image", "resource"}


# ---------------------------------------------------------------------------
# Operation descriptor
# ---------------------------------------------------------------------------


class ToolDefinition(BaseModel):
  """Schema for an AI-callable tool, as advertised on the wire."""

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  name: str = Field(description="Tool name (snake_case, unique per provider)")
  description: str = Field(default="", description="Human-readable description")
  input_schema: dict[str, Any] = Field(
    alias="inputSchema",
    description="JSON Schema for tool arguments",
    default_factory=lambda: {"type": "object", "properties": {}},
  )

  def to_wire(self) -> dict[str, Any]:
    return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Tool call
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
  """A named invocation with an untyped argument payload."""

  model_config = ConfigDict(frozen=True)

  name: str
  arguments: Any = Field(default_factory=dict)
  id: str | None = None


# ---------------------------------------------------------------------------
# Tool result (tagged union)
# ---------------------------------------------------------------------------


class ToolSuccess(BaseModel):
  model_config = ConfigDict(frozen=True)

  kind: Literal["success"] = "success"
  content: list[ContentBlock] = Field(default_factory=list)

  @property
  def is_error(self) -> bool:
    return False

  @property
  def text(self) -> str:
    return "\n".join(b.text for b in self.content if isinstance(b, TextContent))

  @classmethod
  def of_text(cls, text: str) -> ToolSuccess:
    return cls(content=[TextContent(type="text", text=text)])

  def to_wire(self) -> dict[str, Any]:
    return {
      "content": [b.model_dump(by_alias=True, exclude_none=True) for b in self.content],
      "isError": False,
    }


class ToolFailure(BaseModel):
  model_config = ConfigDict(frozen=True)

  kind: Literal["failure"] = "failure"
  code: int
  message: str
  data: Any = None

  @property
  def is_error(self) -> bool:
    return True

  @property
  def text(self) -> str:
    return f"Error [{self.code}]: {self.message}"

  @classmethod
  def from_error(cls, error: ToolError) -> ToolFailure:
    return cls(code=error.code, message=error.message, data=error.data)

  def to_error(self) -> ToolError:
    return ToolError(self.code, self.message, self.data)

  def to_wire(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"code": self.code, "message": self.message}
    if self.data is not None:
      payload["data"] = self.data
    return payload


ToolResult = Annotated[Union[ToolSuccess, ToolFailure], Field(discriminator="kind")]


def result_from_wire(payload: Any) -> ToolSuccess | ToolFailure:
  """Convert a ``tools/call`` result payload into a ToolResult.

  Servers that report failures in-band (``isError: true``) are mapped to an
  InternalError failure carrying their text.
  """
  if not isinstance(payload, dict):
    return ToolFailure(
      code=ErrorCode.INTERNAL_ERROR,
      message=f"Malformed tool result: {payload!r}",
    )
  blocks: list[Any] = []
  for raw in payload.get("content") or []:
    if isinstance(raw, dict) and raw.get("type") in _KNOWN_BLOCK_TYPES:
      blocks.append(raw)
    else:
      log.debug("Dropping unsupported content block: %r", raw)
  success = ToolSuccess.model_validate({"content": blocks})
  if payload.get("isError"):
    return ToolFailure(code=ErrorCode.INTERNAL_ERROR, message=success.text or "Tool reported an error")
  return success


def to_text_content(value: Any) -> list[TextContent]:
  """Shape a handler's return value into text content blocks."""
  if isinstance(value, str):
    text = value
  elif isinstance(value, BaseModel):
    text = value.model_dump_json(indent=2, by_alias=True)
  elif isinstance(value, list) and all(isinstance(v, BaseModel) for v in value):
    text = json.dumps([v.model_dump(mode="json", by_alias=True) for v in value], indent=2)
  else:
    text = json.dumps(value, indent=2, default=str)
  return [TextContent(type="text", text=text)]


# ---------------------------------------------------------------------------
# Provider definition
# ---------------------------------------------------------------------------

OperationHandler = Callable[[Any], Awaitable[Any]]
LoadHook = Callable[[], Awaitable[None]]


class ProviderTool(BaseModel):
  """A tool the provider exposes, bound to its handler."""

  model_config = ConfigDict(arbitrary_types_allowed=True)

  definition: ToolDefinition
  execute: OperationHandler = Field(
    description="Async function receiving the validated parameter record"
  )


class ProviderDefinition(BaseModel):
  """Top-level provider definition: the `skill` object exported by skill.py."""

  model_config = ConfigDict(arbitrary_types_allowed=True)

  name: str = Field(description="Provider name, used as serverInfo.name")
  description: str = Field(description="Brief description")
  version: str = Field(default="1.0.0", description="Semver version string")
  tools: list[ProviderTool] = Field(default_factory=list)
  on_load: LoadHook | None = Field(
    default=None,
    description="Called once before the provider starts serving",
  )
  on_unload: LoadHook | None = None
