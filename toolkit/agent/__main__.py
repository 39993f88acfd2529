"""
Run the tool-calling agent against the configured providers.

Run with: python -m toolkit.agent "Search for emails from sender@example.com"
          python -m toolkit.agent --providers providers.json --max-steps 8 "..."
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from toolkit.agent.loop import AgentLoop, LoopOutcome, LoopState
from toolkit.agent.reasoning import OpenAIReasoningBackend
from toolkit.client.aggregator import ToolAggregator
from toolkit.config import (
  AgentSettings,
  configure_logging,
  default_provider_configs,
  load_env,
  load_provider_configs,
)
from toolkit.runtime.errors import FatalConfigError

log = logging.getLogger("toolkit.agent")

DEFAULT_GOAL = "Search for recent emails and summarize them"


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(prog="tool-agent", description=__doc__.strip().splitlines()[0])
  parser.add_argument("goal", nargs="?", default=DEFAULT_GOAL, help="What the agent should do")
  parser.add_argument("--providers", help="Providers JSON file (default: TOOL_PROVIDERS_FILE or bundled Gmail)")
  parser.add_argument("--max-steps", type=int, help="Reasoning step cap (default: AGENT_MAX_STEPS or 5)")
  parser.add_argument("--model", help="Chat model (default: OPENAI_MODEL or gpt-4o)")
  parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
  args = parser.parse_args(argv)
  if args.max_steps is not None and args.max_steps < 1:
    parser.error("--max-steps must be at least 1")
  return args


def print_outcome(outcome: LoopOutcome) -> None:
  print("\n=== AI Response ===")
  print(outcome.text or "(no answer)")
  if outcome.tool_calls:
    print("\n=== Tool Usage ===")
    for step in outcome.steps:
      for call in step.tool_calls:
        print(f"Step {step.index}: Called {call.name} with: {call.arguments}")
  if outcome.hit_step_cap:
    print("\n(step limit reached)")


async def run(goal: str, settings: AgentSettings, providers_file: str | None) -> LoopOutcome:
  path = providers_file or settings.providers_file
  configs = load_provider_configs(path) if path else default_provider_configs()
  backend = OpenAIReasoningBackend(
    model=settings.openai_model,
    api_key=settings.openai_api_key,
    base_url=settings.openai_base_url,
  )
  async with ToolAggregator() as aggregator:
    await aggregator.initialize(configs)
    tools = await aggregator.list_all_tools()
    print("Available tools:", ", ".join(t.name for t in tools) or "(none)")
    loop = AgentLoop(
      backend,
      aggregator,
      max_steps=settings.max_steps,
      step_timeout=settings.step_timeout,
    )
    return await loop.run(goal)


def main(argv: list[str] | None = None) -> int:
  args = _parse_args(argv)
  load_env()
  try:
    settings = AgentSettings.from_env()
  except FatalConfigError as exc:
    print(f"Configuration error: {exc}", file=sys.stderr)
    return 2
  overrides: dict[str, object] = {}
  if args.max_steps is not None:
    overrides["max_steps"] = args.max_steps
  if args.model:
    overrides["openai_model"] = args.model
  if overrides:
    settings = settings.model_copy(update=overrides)
  configure_logging("DEBUG" if args.verbose else settings.log_level)

  print("Running AI with tools...")
  print("User message:", args.goal)
  try:
    outcome = asyncio.run(run(args.goal, settings, args.providers))
  except FatalConfigError as exc:
    print(f"Configuration error: {exc}", file=sys.stderr)
    return 2
  except KeyboardInterrupt:
    return 130

  print_outcome(outcome)
  if outcome.state is LoopState.FAILED:
    print(f"\nFailed: {outcome.error}", file=sys.stderr)
    return 1
  return 0


if __name__ == "__main__":
  sys.exit(main())
