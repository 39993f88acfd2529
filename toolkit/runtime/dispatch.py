"""
Dispatch engine — one ToolCall in, exactly one ToolResult out.

Order of checks: name lookup, argument validation into the typed parameter
record, handler execution, result normalization. Protocol errors raised by a
handler pass through unchanged; anything else becomes an InternalError.
"""

from __future__ import annotations

import logging

from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from toolkit.runtime.errors import ErrorCode, ToolError
from toolkit.runtime.registry import OperationRegistry
from toolkit.runtime.schema import describe_validation_error
from toolkit.types.tool_types import ToolCall, ToolFailure, ToolSuccess, to_text_content

log = logging.getLogger("toolkit.runtime.dispatch")


class Dispatcher:
  def __init__(self, registry: OperationRegistry) -> None:
    self._registry = registry

  @property
  def registry(self) -> OperationRegistry:
    return self._registry

  async def handle(self, call: ToolCall) -> ToolSuccess | ToolFailure:
    try:
      op = self._registry.lookup(call.name)
    except ToolError as err:
      log.warning("Unknown tool requested: %s", call.name)
      return ToolFailure.from_error(err)

    arguments = {} if call.arguments is None else call.arguments
    if not isinstance(arguments, dict):
      return ToolFailure(
        code=ErrorCode.INVALID_PARAMS,
        message="Invalid parameter arguments: expected an object",
        data={"field": "arguments"},
      )

    try:
      params = op.params_model.model_validate(arguments)
    except ValidationError as exc:
      field, message = describe_validation_error(exc)
      log.info("Rejected %s call: %s", call.name, message)
      return ToolFailure(code=ErrorCode.INVALID_PARAMS, message=message, data={"field": field})

    try:
      value = await op.execute(params)
    except McpError as err:
      return ToolFailure.from_error(ToolError.from_mcp(err))
    except Exception as exc:
      log.exception("Error executing tool %s", call.name)
      return ToolFailure(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Tool execution failed: {exc}",
        data={"type": type(exc).__name__},
      )

    if isinstance(value, (ToolSuccess, ToolFailure)):
      return value
    return ToolSuccess(content=to_text_content(value))
