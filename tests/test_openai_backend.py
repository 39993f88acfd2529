"""Tests for the OpenAI reasoning backend, against a stubbed client."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from toolkit.agent.reasoning import OpenAIReasoningBackend, parse_arguments, tool_to_function
from toolkit.types.tool_types import ToolDefinition

SEARCH = ToolDefinition(
  name="search_emails",
  description="Search for emails in Gmail",
  input_schema={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
)


def completion(content=None, tool_calls=None):
  message = SimpleNamespace(content=content, tool_calls=tool_calls)
  return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def function_call(call_id: str, name: str, arguments: str):
  return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def make_client(response):
  create = AsyncMock(return_value=response)
  return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create))), create


class TestOpenAIReasoningBackend:
  @pytest.mark.asyncio
  async def test_tool_calls_are_mapped(self):
    client, create = make_client(
      completion(tool_calls=[function_call("call_a", "search_emails", '{"query": "invoice"}')])
    )
    backend = OpenAIReasoningBackend(client, model="gpt-4o-mini")
    step = await backend.next_step([{"role": "user", "content": "hi"}], [SEARCH], remaining_steps=3)

    assert not step.is_final
    assert step.tool_calls[0].id == "call_a"
    assert step.tool_calls[0].arguments == {"query": "invoice"}

    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["tools"] == [tool_to_function(SEARCH)]
    assert "tool_choice" not in kwargs

  @pytest.mark.asyncio
  async def test_last_step_disables_tools(self):
    client, create = make_client(completion(content="Here is the summary."))
    step = await OpenAIReasoningBackend(client).next_step([], [SEARCH], remaining_steps=1)
    assert step.is_final
    assert step.text == "Here is the summary."
    assert create.await_args.kwargs["tool_choice"] == "none"

  @pytest.mark.asyncio
  async def test_no_tools_sends_no_tool_fields(self):
    client, create = make_client(completion(content="hi"))
    await OpenAIReasoningBackend(client).next_step([], [], remaining_steps=1)
    kwargs = create.await_args.kwargs
    assert "tools" not in kwargs
    assert "tool_choice" not in kwargs

  @pytest.mark.asyncio
  async def test_malformed_arguments_become_empty(self):
    client, _ = make_client(completion(tool_calls=[function_call("c", "search_emails", "{not json")]))
    step = await OpenAIReasoningBackend(client).next_step([], [SEARCH], remaining_steps=2)
    assert step.tool_calls[0].arguments == {}

  @pytest.mark.asyncio
  async def test_no_choices(self):
    client, _ = make_client(SimpleNamespace(choices=[]))
    with pytest.raises(RuntimeError):
      await OpenAIReasoningBackend(client).next_step([], [], remaining_steps=1)

  def test_tool_to_function(self):
    assert tool_to_function(SEARCH) == {
      "type": "function",
      "function": {
        "name": "search_emails",
        "description": "Search for emails in Gmail",
        "parameters": SEARCH.input_schema,
      },
    }

  def test_parse_arguments(self):
    assert parse_arguments(None, "t") == {}
    assert parse_arguments("", "t") == {}
    assert parse_arguments('{"a": 1}', "t") == {"a": 1}
