"""
Provider lifecycle hooks and server entry point.
"""

from __future__ import annotations

import logging
import os

from toolkit.runtime.errors import FatalConfigError
from toolkit.runtime.server import run_provider

from .client.backend import MailBackend
from .client.memory_backend import MemoryMailBackend
from .state import store

log = logging.getLogger("skill.gmail.server")

BACKENDS = ("auto", "memory", "gmail")


def create_backend_from_env(environ: dict[str, str] | None = None) -> MailBackend:
  """Pick the mail backend from GMAIL_BACKEND and the GMAIL_* credentials."""
  env = os.environ if environ is None else environ
  choice = (env.get("GMAIL_BACKEND") or "auto").strip().lower()
  if choice not in BACKENDS:
    raise FatalConfigError(f"GMAIL_BACKEND must be one of {', '.join(BACKENDS)}, got '{choice}'")

  refresh_token = env.get("GMAIL_REFRESH_TOKEN", "")
  if choice == "memory" or (choice == "auto" and not refresh_token):
    log.info("Using in-memory mailbox")
    return MemoryMailBackend()

  client_id = env.get("GMAIL_CLIENT_ID", "")
  client_secret = env.get("GMAIL_CLIENT_SECRET", "")
  missing = [
    name
    for name, value in (
      ("GMAIL_CLIENT_ID", client_id),
      ("GMAIL_CLIENT_SECRET", client_secret),
      ("GMAIL_REFRESH_TOKEN", refresh_token),
    )
    if not value
  ]
  if missing:
    raise FatalConfigError(f"Gmail backend requires {', '.join(missing)}")

  from .client.gmail_client import GmailApiBackend

  log.info("Using Gmail API backend")
  return GmailApiBackend.from_refresh_token(client_id, client_secret, refresh_token)


async def on_skill_load() -> None:
  """Called once before serving. Keeps a backend that was installed explicitly."""
  if not store.has_backend():
    store.set_backend(create_backend_from_env())
  log.info("Gmail provider loaded")


async def on_skill_unload() -> None:
  if store.has_backend():
    try:
      await store.get_backend().close()
    except Exception:
      log.exception("Error closing mail backend")
  store.reset_backend()
  log.info("Gmail provider unloaded")


async def run_server(transport: str = "stdio", host: str = "127.0.0.1", port: int = 8765) -> None:
  from .skill import skill

  await run_provider(skill, transport=transport, host=host, port=port)
