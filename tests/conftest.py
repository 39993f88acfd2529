"""
Shared fixtures: an in-memory mailbox installed as the Gmail provider backend,
and small provider definitions for exercising the runtime.
"""

from __future__ import annotations

from typing import Any

import pytest

from skills.gmail.client.memory_backend import MemoryMailBackend
from skills.gmail.state import store
from toolkit.runtime.errors import ErrorCode, ToolError
from toolkit.types.tool_types import ProviderDefinition, ProviderTool, ToolDefinition


@pytest.fixture(autouse=True)
def _clean_backend():
  store.reset_backend()
  yield
  store.reset_backend()


@pytest.fixture
def mailbox() -> MemoryMailBackend:
  """Install the seeded in-memory mailbox as the active backend."""
  backend = MemoryMailBackend()
  store.set_backend(backend)
  return backend


# ---------------------------------------------------------------------------
# A tiny provider for runtime tests
# ---------------------------------------------------------------------------


async def _echo(params: Any) -> dict[str, Any]:
  return {"text": params.text, "times": params.times}


async def _boom(params: Any) -> None:
  raise ValueError("kaboom")


async def _missing(params: Any) -> None:
  raise ToolError(ErrorCode.NOT_FOUND, f"Thing not found: {params.thing_id}", {"thingId": params.thing_id})


ECHO_SCHEMA = {
  "type": "object",
  "properties": {
    "text": {"type": "string", "minLength": 1},
    "times": {"type": "integer", "default": 1, "minimum": 1, "maximum": 3},
  },
  "required": ["text"],
}


def make_provider(name: str = "demo") -> ProviderDefinition:
  return ProviderDefinition(
    name=name,
    description="Demo provider",
    tools=[
      ProviderTool(
        definition=ToolDefinition(name="echo", description="Echo text", input_schema=ECHO_SCHEMA),
        execute=_echo,
      ),
      ProviderTool(
        definition=ToolDefinition(name="boom", description="Always fails"),
        execute=_boom,
      ),
      ProviderTool(
        definition=ToolDefinition(
          name="find_thing",
          description="Look something up",
          input_schema={
            "type": "object",
            "properties": {"thingId": {"type": "string"}},
            "required": ["thingId"],
          },
        ),
        execute=_missing,
      ),
    ],
  )


@pytest.fixture
def demo_provider() -> ProviderDefinition:
  return make_provider()
