"""
Mailbox management tool handlers.
"""

from __future__ import annotations

import logging
from typing import Any

from ..client.backend import EmailNotFoundError
from ..helpers import email_not_found
from ..state.store import get_backend
from ..state.types import DeleteReceipt

log = logging.getLogger("skill.gmail.handlers.manage")


async def delete_email(params: Any) -> DeleteReceipt:
  try:
    receipt = await get_backend().delete(params.email_id)
  except EmailNotFoundError:
    raise email_not_found(params.email_id) from None
  log.debug("delete_email(%r) done", params.email_id)
  return receipt
