"""
Reasoning backend contract and the OpenAI chat-completions implementation.

A backend receives the conversation so far, the callable tools and the number
of steps left, and answers with either final text or tool invocations.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field

from toolkit.types.tool_types import ToolDefinition

log = logging.getLogger("toolkit.agent.reasoning")

DEFAULT_MODEL = "gpt-4o"


class ModelToolCall(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  name: str
  arguments: Any = Field(default_factory=dict)


class ModelStep(BaseModel):
  """One reasoning step: final text, or tool calls (optionally with text)."""

  model_config = ConfigDict(frozen=True)

  text: str | None = None
  tool_calls: list[ModelToolCall] = Field(default_factory=list)

  @property
  def is_final(self) -> bool:
    return not self.tool_calls


class ReasoningBackend(Protocol):
  async def next_step(
    self,
    messages: list[dict[str, Any]],
    tools: list[ToolDefinition],
    remaining_steps: int,
  ) -> ModelStep: ...


def tool_to_function(tool: ToolDefinition) -> dict[str, Any]:
  return {
    "type": "function",
    "function": {
      "name": tool.name,
      "description": tool.description,
      "parameters": tool.input_schema,
    },
  }


def parse_arguments(raw: str | None, tool_name: str) -> Any:
  """Decode tool-call arguments; malformed JSON becomes an empty object."""
  if not raw:
    return {}
  try:
    return json.loads(raw)
  except json.JSONDecodeError:
    log.warning("Model sent malformed arguments for %s: %s", tool_name, raw[:200])
    return {}


class OpenAIReasoningBackend:
  """Chat completions with function tools."""

  def __init__(
    self,
    client: Any = None,
    *,
    model: str = DEFAULT_MODEL,
    api_key: str | None = None,
    base_url: str | None = None,
    temperature: float = 0.0,
  ) -> None:
    self._client = client if client is not None else AsyncOpenAI(api_key=api_key, base_url=base_url)
    self.model = model
    self.temperature = temperature

  async def next_step(
    self,
    messages: list[dict[str, Any]],
    tools: list[ToolDefinition],
    remaining_steps: int,
  ) -> ModelStep:
    kwargs: dict[str, Any] = {
      "model": self.model,
      "messages": messages,
      "temperature": self.temperature,
    }
    if tools:
      kwargs["tools"] = [tool_to_function(t) for t in tools]
      # Last allowed step: ask for an answer instead of another call
      if remaining_steps <= 1:
        kwargs["tool_choice"] = "none"

    response = await self._client.chat.completions.create(**kwargs)
    if not response.choices:
      raise RuntimeError("Model returned no choices")
    message = response.choices[0].message

    calls = [
      ModelToolCall(
        id=tc.id,
        name=tc.function.name,
        arguments=parse_arguments(tc.function.arguments, tc.function.name),
      )
      for tc in (message.tool_calls or [])
    ]
    return ModelStep(text=message.content, tool_calls=calls)
