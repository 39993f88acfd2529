"""
Provider Smoke Runner

Imports a provider package, validates its definition, builds its registry and
calls every tool through the dispatch engine with arguments generated from
the tool's input schema.

Usage:
    python -m toolkit.harness.runner <provider-package> [--verbose]

Examples:
    GMAIL_BACKEND=memory python -m toolkit.harness.runner skills.gmail
    python -m toolkit.harness.runner skills.gmail --verbose
"""

from __future__ import annotations

import asyncio
import importlib
import re
import sys
from typing import Any

from toolkit.runtime.dispatch import Dispatcher
from toolkit.runtime.errors import ErrorCode, FatalConfigError
from toolkit.runtime.registry import OperationRegistry
from toolkit.types.tool_types import ProviderDefinition, ToolCall

# ---------------------------------------------------------------------------
# Console helpers
# ---------------------------------------------------------------------------

PASS = "\033[32m✓\033[0m"
FAIL = "\033[31m✗\033[0m"
WARN = "\033[33m!\033[0m"


def bold(s: str) -> str:
  return f"\033[1m{s}\033[0m"


def dim(s: str) -> str:
  return f"\033[2m{s}\033[0m"


pass_count = 0
fail_count = 0
warn_count = 0


def _pass(msg: str) -> None:
  global pass_count
  pass_count += 1
  print(f"  {PASS} {msg}")


def _fail(msg: str) -> None:
  global fail_count
  fail_count += 1
  print(f"  {FAIL} {msg}")


def _warn(msg: str) -> None:
  global warn_count
  warn_count += 1
  print(f"  {WARN} {msg}")


def _info(msg: str) -> None:
  print(f"  {dim(msg)}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def generate_arg(schema: dict[str, Any]) -> Any:
  """Generate a dummy value for a JSON Schema property."""
  if "default" in schema:
    return schema["default"]
  if "enum" in schema:
    return schema["enum"][0]
  typ = schema.get("type", "")
  if typ == "string":
    return "test-value"
  if typ in ("number", "integer"):
    low = schema.get("minimum", 1)
    high = schema.get("maximum", max(low, 42))
    return min(max(42, low), high)
  if typ == "boolean":
    return True
  if typ == "array":
    items = schema.get("items")
    return [generate_arg(items)] if isinstance(items, dict) else []
  if typ == "object":
    props = schema.get("properties", {})
    return {k: generate_arg(v) for k, v in props.items()}
  return "test-value"


def load_provider(package: str) -> ProviderDefinition:
  """Import ``<package>.skill`` and return its ``skill`` export."""
  module = importlib.import_module(f"{package}.skill")
  provider = getattr(module, "skill", None)
  if provider is None:
    raise ImportError(f"{package}.skill must export a `skill` variable")
  if isinstance(provider, ProviderDefinition):
    return provider
  return ProviderDefinition.model_validate(provider)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(package: str, verbose: bool) -> int:
  global pass_count, fail_count, warn_count
  pass_count = fail_count = warn_count = 0

  print()
  print(bold(f"Testing provider: {package}"))
  print()

  # -------------------------------------------------------------------
  # 1. Definition
  # -------------------------------------------------------------------
  print(bold("skill.py"))
  try:
    provider = load_provider(package)
    _pass("Has `skill` export")
  except Exception as exc:
    _fail(f"Failed to import {package}.skill: {exc}")
    if verbose:
      import traceback

      traceback.print_exc()
    _print_summary()
    return 1

  if provider.name:
    _pass(f'name: "{provider.name}"')
  else:
    _fail("Missing name")

  if provider.description:
    _pass(f'description: "{provider.description}"')
  else:
    _fail("Missing description")

  if re.match(r"^\d+\.\d+\.\d+", provider.version):
    _pass(f"version: {provider.version}")
  else:
    _warn(f'version "{provider.version}" is not semver')

  try:
    registry = OperationRegistry.from_provider(provider)
    _pass(f"registry: {len(registry)} tool(s) compiled")
  except FatalConfigError as exc:
    _fail(f"registry: {exc}")
    _print_summary()
    return 1

  print()

  # -------------------------------------------------------------------
  # 2. Lifecycle
  # -------------------------------------------------------------------
  print(bold("Lifecycle Hooks"))
  if provider.on_load:
    try:
      await provider.on_load()
      _pass("on_load: OK")
    except Exception as exc:
      _fail(f"on_load: threw {exc}")
      _print_summary()
      return 1
  else:
    _info("on_load: not defined")
  print()

  # -------------------------------------------------------------------
  # 3. Tools
  # -------------------------------------------------------------------
  dispatcher = Dispatcher(registry)
  print(bold(f"Tools ({len(registry)})"))
  for definition in registry.list():
    if not definition.description:
      _warn(f'Tool "{definition.name}": missing description')
    props = definition.input_schema.get("properties", {})
    generated_args = {k: generate_arg(v) for k, v in props.items()}
    if verbose:
      _info(f"{definition.name} args: {generated_args}")

    result = await dispatcher.handle(ToolCall(name=definition.name, arguments=generated_args))
    preview = result.text[:80] + ("..." if len(result.text) > 80 else "")
    if not result.is_error:
      _pass(f'{definition.name}: returned "{preview}"')
    elif result.code == ErrorCode.INTERNAL_ERROR:
      _fail(f"{definition.name}: {preview}")
    else:
      # Dummy arguments are expected to miss real data
      _warn(f"{definition.name}: {preview}")
  print()

  if provider.on_unload:
    try:
      await provider.on_unload()
      _pass("on_unload: OK")
    except Exception as exc:
      _fail(f"on_unload: threw {exc}")
    print()

  _print_summary()
  return 1 if fail_count > 0 else 0


def _print_summary() -> None:
  print(bold("Summary"))
  print(f"  {PASS} {pass_count} passed   {FAIL} {fail_count} failed   {WARN} {warn_count} warnings")
  print()


def main() -> None:
  args = sys.argv[1:]
  verbose = "--verbose" in args
  package = next((a for a in args if not a.startswith("--")), None)

  if not package:
    print("Usage: python -m toolkit.harness.runner <provider-package> [--verbose]", file=sys.stderr)
    sys.exit(1)

  exit_code = asyncio.run(_run(package, verbose))
  sys.exit(exit_code)


if __name__ == "__main__":
  main()
