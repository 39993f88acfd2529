"""
Message read tool handlers.

Each handler receives the validated parameter record for its tool and returns
plain data; the runtime serializes it.
"""

from __future__ import annotations

import logging
from typing import Any

from ..client.backend import EmailNotFoundError
from ..helpers import email_not_found
from ..state.store import get_backend
from ..state.types import EmailDetail, EmailSummary

log = logging.getLogger("skill.gmail.handlers.message")


async def search_emails(params: Any) -> list[EmailSummary]:
  results = await get_backend().search(params.query, params.max_results)
  log.debug("search_emails(%r) -> %d result(s)", params.query, len(results))
  return results


async def get_email(params: Any) -> EmailDetail:
  try:
    return await get_backend().fetch(params.email_id)
  except EmailNotFoundError:
    raise email_not_found(params.email_id) from None

