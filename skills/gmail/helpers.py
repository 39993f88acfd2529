"""
Shared formatting and error helpers.
"""

from __future__ import annotations

import base64
import logging
import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from toolkit.runtime.errors import ErrorCode, ToolError

log = logging.getLogger("skill.gmail.helpers")

SNIPPET_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def email_not_found(email_id: str) -> ToolError:
  return ToolError(ErrorCode.NOT_FOUND, f"Email not found: {email_id}", {"emailId": email_id})


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def make_snippet(body: str, length: int = SNIPPET_LENGTH) -> str:
  text = _WHITESPACE.sub(" ", body).strip()
  if len(text) <= length:
    return text
  return text[: length - 3].rstrip() + "..."


def format_date(value: datetime) -> str:
  if value.tzinfo is None:
    value = value.replace(tzinfo=UTC)
  return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def header_map(headers: list[dict[str, Any]] | None) -> dict[str, str]:
  """Gmail ``payload.headers`` → lower-cased name → value."""
  return {str(h.get("name", "")).lower(): str(h.get("value", "")) for h in headers or []}


def gmail_date(headers: dict[str, str], internal_date: str | None) -> str:
  """Prefer the Date header; fall back to Gmail's internalDate (epoch ms)."""
  raw = headers.get("date")
  if raw:
    try:
      return format_date(parsedate_to_datetime(raw))
    except (TypeError, ValueError):
      log.debug("Unparseable Date header: %s", raw)
  if internal_date:
    return format_date(datetime.fromtimestamp(int(internal_date) / 1000, tz=UTC))
  return ""


def decode_part(data: str | None) -> str:
  if not data:
    return ""
  padded = data + "=" * (-len(data) % 4)
  return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def extract_body(payload: dict[str, Any]) -> str:
  """First text/plain part of a Gmail message payload, else the first text/html one."""
  plain: list[str] = []
  html: list[str] = []

  def walk(part: dict[str, Any]) -> None:
    mime = part.get("mimeType", "")
    data = (part.get("body") or {}).get("data")
    if mime == "text/plain" and data:
      plain.append(decode_part(data))
    elif mime == "text/html" and data:
      html.append(decode_part(data))
    for sub in part.get("parts") or []:
      walk(sub)

  walk(payload)
  if plain:
    return plain[0]
  if html:
    return re.sub(r"<[^>]+>", "", html[0])
  return ""
