"""
Tool name → handler function.
"""

from __future__ import annotations

from typing import Any

from .manage import delete_email
from .message import get_email, search_emails
from .send import send_email

HANDLERS: dict[str, Any] = {
  # Message tools
  "search_emails": search_emails,
  "get_email": get_email,
  # Send tools
  "send_email": send_email,
  # Manage tools
  "delete_email": delete_email,
}
