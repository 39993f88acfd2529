"""
Send tool handler.
"""

from __future__ import annotations

from typing import Any

from ..state.store import get_backend
from ..state.types import SendReceipt
from ..validation import validate_email_list


async def send_email(params: Any) -> SendReceipt:
  to = validate_email_list(params.to, "to")
  return await get_backend().send(", ".join(to), params.subject, params.body)
