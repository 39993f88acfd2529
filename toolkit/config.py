"""
Runtime configuration: environment / .env settings, provider lists, logging.

Usage:
    from toolkit.config import AgentSettings, configure_logging, load_env

    load_env()
    settings = AgentSettings.from_env()
    configure_logging(settings.log_level)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from toolkit.runtime.errors import FatalConfigError
from toolkit.types.provider_types import ProviderConfig

log = logging.getLogger("toolkit.config")

LOG_FORMAT = "[%(name)s] %(levelname)s: %(message)s"

_PROVIDER_LIST = TypeAdapter(list[ProviderConfig])


def load_env(path: str | os.PathLike[str] | None = None) -> bool:
  """Load a .env file into the environment; existing variables win."""
  return load_dotenv(dotenv_path=path, override=False)


def configure_logging(level: str | int = "INFO") -> None:
  """Log to stderr. Stdout belongs to the protocol on stdio providers."""
  if isinstance(level, str):
    level = logging.getLevelName(level.upper())
    if not isinstance(level, int):
      level = logging.INFO
  logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


class AgentSettings(BaseModel):
  model_config = ConfigDict(frozen=True)

  openai_api_key: str | None = None
  openai_base_url: str | None = None
  openai_model: str = "gpt-4o"
  max_steps: int = Field(default=5, ge=1)
  step_timeout: float = Field(default=120.0, gt=0)
  providers_file: str | None = None
  log_level: str = "INFO"

  @classmethod
  def from_env(cls, environ: dict[str, str] | None = None) -> AgentSettings:
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {
      "openai_api_key": env.get("OPENAI_API_KEY") or None,
      "openai_base_url": env.get("OPENAI_BASE_URL") or None,
      "openai_model": env.get("OPENAI_MODEL") or "gpt-4o",
      "max_steps": env.get("AGENT_MAX_STEPS") or 5,
      "step_timeout": env.get("AGENT_STEP_TIMEOUT") or 120.0,
      "providers_file": env.get("TOOL_PROVIDERS_FILE") or None,
      "log_level": env.get("LOG_LEVEL") or "INFO",
    }
    try:
      return cls.model_validate(values)
    except ValidationError as exc:
      raise FatalConfigError(f"Invalid agent settings: {exc}") from exc


def load_provider_configs(path: str | os.PathLike[str]) -> list[ProviderConfig]:
  """Read a providers JSON file: a list, or an object with a ``providers`` list."""
  file = Path(path)
  try:
    raw = json.loads(file.read_text(encoding="utf-8"))
  except FileNotFoundError as exc:
    raise FatalConfigError(f"Providers file not found: {file}") from exc
  except json.JSONDecodeError as exc:
    raise FatalConfigError(f"Providers file {file} is not valid JSON: {exc}") from exc

  entries = raw.get("providers") if isinstance(raw, dict) else raw
  try:
    configs = _PROVIDER_LIST.validate_python(entries)
  except ValidationError as exc:
    raise FatalConfigError(f"Invalid providers file {file}: {exc}") from exc

  names = [c.name for c in configs]
  duplicates = sorted({n for n in names if names.count(n) > 1})
  if duplicates:
    raise FatalConfigError(f"Duplicate provider name(s) in {file}: {', '.join(duplicates)}")
  log.debug("Loaded %d provider config(s) from %s", len(configs), file)
  return configs


def default_provider_configs() -> list[ProviderConfig]:
  """The bundled Gmail provider, launched with this interpreter."""
  return [
    ProviderConfig(
      name="gmail",
      transport="stdio",
      command=sys.executable,
      args=["-m", "skills.gmail"],
    )
  ]
