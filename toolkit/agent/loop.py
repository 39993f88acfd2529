"""
Autonomous call loop.

Alternates between asking the reasoning backend for a step and executing the
requested tools through the aggregator, feeding every result back into the
conversation. The number of reasoning steps is capped; reaching the cap ends
the run in DONE with whatever answer text the model produced so far.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from toolkit.runtime.errors import ErrorCode
from toolkit.types.tool_types import ToolFailure, ToolSuccess

if TYPE_CHECKING:
  from toolkit.agent.reasoning import ModelToolCall, ReasoningBackend
  from toolkit.client.aggregator import ToolAggregator

log = logging.getLogger("toolkit.agent.loop")

DEFAULT_MAX_STEPS = 5
DEFAULT_STEP_TIMEOUT = 120.0


class LoopState(str, Enum):
  AWAITING_MODEL_STEP = "awaiting_model_step"
  EXECUTING_TOOL = "executing_tool"
  DONE = "done"
  FAILED = "failed"


@dataclass
class StepRecord:
  index: int
  text: str | None
  tool_calls: list[ModelToolCall] = field(default_factory=list)
  results: list[ToolSuccess | ToolFailure] = field(default_factory=list)


@dataclass
class LoopOutcome:
  state: LoopState
  text: str
  steps: list[StepRecord]
  states: list[LoopState]
  error: str | None = None
  hit_step_cap: bool = False

  @property
  def tool_calls(self) -> list[ModelToolCall]:
    return [call for step in self.steps for call in step.tool_calls]


def render_result(result: ToolSuccess | ToolFailure) -> str:
  """Tool output as conversation text. Failures are content, not exceptions."""
  if result.is_error:
    return result.text
  return result.text or "(no text content)"


class AgentLoop:
  def __init__(
    self,
    backend: ReasoningBackend,
    aggregator: ToolAggregator,
    max_steps: int = DEFAULT_MAX_STEPS,
    step_timeout: float = DEFAULT_STEP_TIMEOUT,
    system_prompt: str | None = None,
  ) -> None:
    if max_steps < 1:
      raise ValueError("max_steps must be at least 1")
    self._backend = backend
    self._aggregator = aggregator
    self.max_steps = max_steps
    self.step_timeout = step_timeout
    self.system_prompt = system_prompt

  async def run(self, goal: str) -> LoopOutcome:
    tools = await self._aggregator.list_all_tools()
    messages: list[dict[str, Any]] = []
    if self.system_prompt:
      messages.append({"role": "system", "content": self.system_prompt})
    messages.append({"role": "user", "content": goal})

    states: list[LoopState] = []
    steps: list[StepRecord] = []
    partial = ""

    for index in range(self.max_steps):
      states.append(LoopState.AWAITING_MODEL_STEP)
      try:
        step = await asyncio.wait_for(
          self._backend.next_step(messages, tools, self.max_steps - index),
          timeout=self.step_timeout,
        )
      except TimeoutError:
        states.append(LoopState.FAILED)
        log.error("Reasoning step %d timed out after %.0fs", index + 1, self.step_timeout)
        return LoopOutcome(
          LoopState.FAILED,
          partial,
          steps,
          states,
          error=f"Reasoning step timed out after {self.step_timeout:g}s",
        )
      except Exception as exc:
        states.append(LoopState.FAILED)
        log.exception("Reasoning backend failed on step %d", index + 1)
        return LoopOutcome(LoopState.FAILED, partial, steps, states, error=f"Reasoning backend error: {exc}")

      if step.text:
        partial = step.text
      record = StepRecord(index=index + 1, text=step.text)
      steps.append(record)

      if step.is_final:
        states.append(LoopState.DONE)
        return LoopOutcome(LoopState.DONE, step.text or "", steps, states)

      states.append(LoopState.EXECUTING_TOOL)
      calls = [_with_id(call, index, n) for n, call in enumerate(step.tool_calls)]
      messages.append(
        {
          "role": "assistant",
          "content": step.text,
          "tool_calls": [
            {
              "id": call.id,
              "type": "function",
              "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in calls
          ],
        }
      )
      for call in calls:
        result = await self._execute(call)
        record.tool_calls.append(call)
        record.results.append(result)
        messages.append({"role": "tool", "tool_call_id": call.id, "content": render_result(result)})

    log.info("Step cap of %d reached, returning partial answer", self.max_steps)
    states.append(LoopState.DONE)
    return LoopOutcome(LoopState.DONE, partial, steps, states, hit_step_cap=True)

  async def _execute(self, call: ModelToolCall) -> ToolSuccess | ToolFailure:
    log.info("Calling %s with %s", call.name, call.arguments)
    try:
      result = await self._aggregator.invoke(call.name, call.arguments)
    except Exception as exc:
      log.exception("Tool %s raised", call.name)
      return ToolFailure(code=ErrorCode.INTERNAL_ERROR, message=str(exc))
    if result.is_error:
      log.info("Tool %s failed: %s", call.name, result.text)
    return result


def _with_id(call: ModelToolCall, step: int, n: int) -> ModelToolCall:
  if call.id:
    return call
  return call.model_copy(update={"id": f"call_{step + 1}_{n + 1}"})
