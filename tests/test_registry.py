"""Tests for the operation registry."""

from __future__ import annotations

import pytest

from toolkit.runtime.errors import ErrorCode, FatalConfigError, ToolError
from toolkit.runtime.registry import OperationRegistry
from toolkit.types.tool_types import ProviderDefinition, ProviderTool, ToolDefinition


async def _noop(params):
  return "ok"


class TestOperationRegistry:
  def test_from_provider_keeps_registration_order(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    assert [d.name for d in registry.list()] == ["echo", "boom", "find_thing"]
    assert len(registry) == 3
    assert "echo" in registry
    assert registry.sealed

  def test_duplicate_names_are_fatal(self):
    tool = ProviderTool(definition=ToolDefinition(name="dup"), execute=_noop)
    provider = ProviderDefinition(name="p", description="d", tools=[tool, tool])
    with pytest.raises(FatalConfigError, match="Duplicate tool name: dup"):
      OperationRegistry.from_provider(provider)

  def test_register_after_seal_is_fatal(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    with pytest.raises(FatalConfigError, match="sealed"):
      registry.register(ToolDefinition(name="late"), _noop)

  def test_invalid_schema_is_fatal_at_registration(self):
    registry = OperationRegistry()
    with pytest.raises(FatalConfigError):
      registry.register(ToolDefinition(name="bad", input_schema={"type": "string"}), _noop)
    assert len(registry) == 0

  def test_get_returns_none_for_unknown(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    assert registry.get("echo").description == "Echo text"
    assert registry.get("nope") is None

  def test_lookup_unknown_raises_method_not_found(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    with pytest.raises(ToolError) as info:
      registry.lookup("nope")
    assert info.value.code == ErrorCode.METHOD_NOT_FOUND
    assert info.value.message == "Unknown tool: nope"

  def test_descriptor_wire_form(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    wire = registry.get("echo").to_wire()
    assert set(wire) == {"name", "description", "inputSchema"}
    assert wire["inputSchema"]["required"] == ["text"]

  def test_repeated_list_is_identical(self, demo_provider):
    registry = OperationRegistry.from_provider(demo_provider)
    assert registry.list() == registry.list()


class TestValidationGate:
  @pytest.mark.asyncio
  async def test_invalid_call_never_reaches_handler(self):
    from toolkit.runtime.dispatch import Dispatcher
    from toolkit.types.tool_types import ToolCall

    calls = []

    async def record(params):
      calls.append(params)

    registry = OperationRegistry()
    registry.register(
      ToolDefinition(
        name="guarded",
        input_schema={"type": "object", "properties": {"id": {"type": "string"}}, "required": ["id"]},
      ),
      record,
    )
    result = await Dispatcher(registry).handle(ToolCall(name="guarded", arguments={}))
    assert result.code == ErrorCode.INVALID_PARAMS
    assert calls == []
