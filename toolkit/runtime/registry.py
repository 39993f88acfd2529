"""
Operation registry — static catalog of the tools a provider advertises.

Descriptors are registered at startup, each with its compiled parameter model
and bound handler. Once sealed the registry never changes shape.

Usage:
    from toolkit.runtime.registry import OperationRegistry

    registry = OperationRegistry.from_provider(skill)
    registry.list()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from toolkit.runtime.errors import ErrorCode, FatalConfigError, ToolError
from toolkit.runtime.schema import compile_input_model

if TYPE_CHECKING:
  from pydantic import BaseModel

  from toolkit.types.tool_types import OperationHandler, ProviderDefinition, ToolDefinition

log = logging.getLogger("toolkit.runtime.registry")


@dataclass(frozen=True)
class RegisteredOperation:
  definition: ToolDefinition
  params_model: type[BaseModel]
  execute: OperationHandler

  @property
  def name(self) -> str:
    return self.definition.name


class OperationRegistry:
  def __init__(self) -> None:
    self._operations: dict[str, RegisteredOperation] = {}
    self._sealed = False

  @classmethod
  def from_provider(cls, provider: ProviderDefinition) -> OperationRegistry:
    registry = cls()
    for tool in provider.tools:
      registry.register(tool.definition, tool.execute)
    registry.seal()
    return registry

  def register(self, definition: ToolDefinition, execute: OperationHandler) -> RegisteredOperation:
    """Add an operation. Duplicate names and late registration are fatal."""
    if self._sealed:
      raise FatalConfigError(
        f"Cannot register '{definition.name}': registry is sealed after startup"
      )
    if definition.name in self._operations:
      raise FatalConfigError(f"Duplicate tool name: {definition.name}")
    op = RegisteredOperation(
      definition=definition,
      params_model=compile_input_model(definition.name, definition.input_schema),
      execute=execute,
    )
    self._operations[definition.name] = op
    log.debug("Registered tool %s", definition.name)
    return op

  def seal(self) -> None:
    self._sealed = True

  @property
  def sealed(self) -> bool:
    return self._sealed

  def list(self) -> list[ToolDefinition]:
    """All descriptors, in registration order."""
    return [op.definition for op in self._operations.values()]

  def get(self, name: str) -> ToolDefinition | None:
    op = self._operations.get(name)
    return op.definition if op else None

  def lookup(self, name: str) -> RegisteredOperation:
    """Return the bound operation or raise a MethodNotFound ToolError."""
    op = self._operations.get(name)
    if op is None:
      raise ToolError(ErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}", {"name": name})
    return op

  def __len__(self) -> int:
    return len(self._operations)

  def __contains__(self, name: object) -> bool:
    return name in self._operations

  def __iter__(self) -> Iterator[RegisteredOperation]:
    return iter(self._operations.values())
