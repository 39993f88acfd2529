"""
Gmail ProviderDefinition — binds the tool catalog to its handlers and
lifecycle hooks.

Usage:
    from skills.gmail.skill import skill
"""

from __future__ import annotations

import logging

from toolkit.runtime.errors import FatalConfigError
from toolkit.types.tool_types import ProviderDefinition, ProviderTool, ToolDefinition

from .handlers import HANDLERS
from .tools import ALL_TOOLS

log = logging.getLogger("skill.gmail.skill")


# ---------------------------------------------------------------------------
# Convert MCP Tool objects -> ProviderTool objects
# ---------------------------------------------------------------------------


def _convert_tools() -> list[ProviderTool]:
  provider_tools: list[ProviderTool] = []
  for mcp_tool in ALL_TOOLS:
    handler = HANDLERS.get(mcp_tool.name)
    if handler is None:
      raise FatalConfigError(f"No handler for tool: {mcp_tool.name}")
    definition = ToolDefinition(
      name=mcp_tool.name,
      description=mcp_tool.description or "",
      input_schema=mcp_tool.inputSchema,
    )
    provider_tools.append(ProviderTool(definition=definition, execute=handler))
  return provider_tools


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------


async def _on_load() -> None:
  from .server import on_skill_load

  await on_skill_load()


async def _on_unload() -> None:
  from .server import on_skill_unload

  await on_skill_unload()


# ---------------------------------------------------------------------------
# Provider definition
# ---------------------------------------------------------------------------

skill = ProviderDefinition(
  name="gmail",
  description="Gmail integration — search, read, send and delete email.",
  version="1.0.0",
  tools=_convert_tools(),
  on_load=_on_load,
  on_unload=_on_unload,
)
