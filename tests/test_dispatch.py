"""Tests for the dispatch engine."""

from __future__ import annotations

import json

import pytest

from toolkit.runtime.dispatch import Dispatcher
from toolkit.runtime.errors import ErrorCode
from toolkit.runtime.registry import OperationRegistry
from toolkit.types.tool_types import ToolCall, ToolFailure, ToolSuccess


@pytest.fixture
def dispatcher(demo_provider) -> Dispatcher:
  return Dispatcher(OperationRegistry.from_provider(demo_provider))


class TestDispatcher:
  @pytest.mark.asyncio
  async def test_success_serializes_return_value(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="echo", arguments={"text": "hi", "times": 2}))
    assert isinstance(result, ToolSuccess)
    assert json.loads(result.text) == {"text": "hi", "times": 2}

  @pytest.mark.asyncio
  async def test_default_applied_before_handler(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="echo", arguments={"text": "hi"}))
    assert json.loads(result.text)["times"] == 1

  @pytest.mark.asyncio
  async def test_unknown_tool(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="nope", arguments={}))
    assert isinstance(result, ToolFailure)
    assert result.code == ErrorCode.METHOD_NOT_FOUND
    assert result.message == "Unknown tool: nope"

  @pytest.mark.asyncio
  async def test_missing_required_parameter(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="echo", arguments={}))
    assert result.code == ErrorCode.INVALID_PARAMS
    assert result.message == "Missing required parameter: text"
    assert result.data == {"field": "text"}

  @pytest.mark.asyncio
  async def test_wrong_type(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="echo", arguments={"text": "hi", "times": "2"}))
    assert result.code == ErrorCode.INVALID_PARAMS
    assert result.data == {"field": "times"}

  @pytest.mark.asyncio
  async def test_arguments_must_be_an_object(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="echo", arguments=["hi"]))
    assert result.code == ErrorCode.INVALID_PARAMS
    assert result.data == {"field": "arguments"}

  @pytest.mark.asyncio
  async def test_null_arguments_treated_as_empty(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="boom", arguments=None))
    # reached the handler, which fails on its own
    assert result.code == ErrorCode.INTERNAL_ERROR

  @pytest.mark.asyncio
  async def test_handler_exception_becomes_internal_error(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="boom"))
    assert result.code == ErrorCode.INTERNAL_ERROR
    assert result.message == "Tool execution failed: kaboom"
    assert result.data == {"type": "ValueError"}

  @pytest.mark.asyncio
  async def test_protocol_error_passes_through(self, dispatcher):
    result = await dispatcher.handle(ToolCall(name="find_thing", arguments={"thingId": "42"}))
    assert result.code == ErrorCode.NOT_FOUND
    assert result.message == "Thing not found: 42"
    assert result.data == {"thingId": "42"}
    assert result.text == "Error [-32004]: Thing not found: 42"
