"""
In-process state for the Gmail provider: the active mail backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
  from ..client.backend import MailBackend

_backend: MailBackend | None = None


def get_backend() -> MailBackend:
  if _backend is None:
    raise RuntimeError("Gmail backend is not configured")
  return _backend


def has_backend() -> bool:
  return _backend is not None


def set_backend(backend: MailBackend) -> None:
  global _backend
  _backend = backend


def reset_backend() -> None:
  global _backend
  _backend = None
