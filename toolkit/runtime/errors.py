"""
Error taxonomy shared by the server runtime and the client.

Every failure that crosses a protocol boundary is a ``ToolError`` carrying a
stable ``ErrorCode`` and a message. Startup-time configuration mistakes are
``FatalConfigError`` and never reach the wire.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from mcp import types
from mcp.shared.exceptions import McpError


class ErrorCode(IntEnum):
  PARSE_ERROR = types.PARSE_ERROR
  INVALID_REQUEST = types.INVALID_REQUEST
  METHOD_NOT_FOUND = types.METHOD_NOT_FOUND
  INVALID_PARAMS = types.INVALID_PARAMS
  INTERNAL_ERROR = types.INTERNAL_ERROR
  # Server-defined range (-32000 .. -32099)
  NOT_FOUND = -32004


class ToolError(McpError):
  """Protocol-shaped error: constructed once at the point of failure."""

  def __init__(self, code: int, message: str, data: Any | None = None) -> None:
    super().__init__(types.ErrorData(code=int(code), message=message, data=data))

  @property
  def code(self) -> int:
    return self.error.code

  @property
  def message(self) -> str:
    return self.error.message

  @property
  def data(self) -> Any:
    return self.error.data

  @classmethod
  def from_mcp(cls, error: McpError) -> ToolError:
    if isinstance(error, ToolError):
      return error
    return cls(error.error.code, error.error.message, error.error.data)

  def __repr__(self) -> str:
    return f"ToolError(code={self.code}, message={self.message!r})"


class FatalConfigError(Exception):
  """A programming or configuration mistake detected at startup."""


class ToolNameCollisionError(FatalConfigError):
  def __init__(self, name: str, first: str, second: str) -> None:
    super().__init__(f"Tool '{name}' is advertised by both '{first}' and '{second}'")
    self.name = name
    self.first = first
    self.second = second


class ProviderConnectionError(Exception):
  """The link to a tool provider failed, timed out or was closed."""

  def __init__(self, provider: str, message: str) -> None:
    super().__init__(f"Provider '{provider}': {message}")
    self.provider = provider
