"""
Gmail REST API backend.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from email.message import EmailMessage
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..helpers import extract_body, gmail_date, header_map
from ..state.types import DeleteReceipt, EmailDetail, EmailSummary, SendReceipt
from .backend import EmailNotFoundError

log = logging.getLogger("skill.gmail.client.google")

# Gmail API scopes
SCOPES = [
  "https://www.googleapis.com/auth/gmail.readonly",
  "https://www.googleapis.com/auth/gmail.send",
  "https://www.googleapis.com/auth/gmail.modify",
]

TOKEN_URI = "https://oauth2.googleapis.com/token"
USER_ID = "me"


class GmailApiBackend:
  """Gmail API client. Blocking API calls run in a worker thread."""

  def __init__(self, credentials: Credentials, service: Any = None) -> None:
    self.credentials = credentials
    self.service = service or build("gmail", "v1", credentials=credentials, cache_discovery=False)

  @classmethod
  def from_refresh_token(cls, client_id: str, client_secret: str, refresh_token: str) -> GmailApiBackend:
    creds = Credentials(
      token=None,
      refresh_token=refresh_token,
      token_uri=TOKEN_URI,
      client_id=client_id,
      client_secret=client_secret,
      scopes=SCOPES,
    )
    return cls(creds)

  async def _execute(self, request: Any) -> Any:
    return await asyncio.to_thread(request.execute)

  async def search(self, query: str, max_results: int) -> list[EmailSummary]:
    messages = self.service.users().messages()
    try:
      listing = await self._execute(messages.list(userId=USER_ID, q=query, maxResults=max_results))
    except HttpError as e:
      log.error("Failed to search emails: %s", e)
      raise

    summaries: list[EmailSummary] = []
    for ref in listing.get("messages", [])[:max_results]:
      try:
        msg = await self._execute(
          messages.get(
            userId=USER_ID,
            id=ref["id"],
            format="metadata",
            metadataHeaders=["Subject", "From", "Date"],
          )
        )
      except HttpError as e:
        if e.resp.status == 404:
          # Deleted between list and get
          continue
        raise
      headers = header_map(msg.get("payload", {}).get("headers"))
      summaries.append(
        EmailSummary(
          id=msg["id"],
          subject=headers.get("subject", ""),
          sender=headers.get("from", ""),
          date=gmail_date(headers, msg.get("internalDate")),
          snippet=msg.get("snippet", ""),
        )
      )
    return summaries

  async def fetch(self, email_id: str) -> EmailDetail:
    try:
      msg = await self._execute(
        self.service.users().messages().get(userId=USER_ID, id=email_id, format="full")
      )
    except HttpError as e:
      if e.resp.status == 404:
        raise EmailNotFoundError(email_id) from e
      log.error("Failed to get email %s: %s", email_id, e)
      raise

    payload = msg.get("payload", {})
    headers = header_map(payload.get("headers"))
    return EmailDetail(
      id=msg["id"],
      subject=headers.get("subject", ""),
      sender=headers.get("from", ""),
      to=headers.get("to", ""),
      date=gmail_date(headers, msg.get("internalDate")),
      body=extract_body(payload),
    )

  async def send(self, to: str, subject: str, body: str) -> SendReceipt:
    message = EmailMessage()
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    raw = base64.urlsafe_b64encode(message.as_bytes()).decode()

    try:
      sent = await self._execute(
        self.service.users().messages().send(userId=USER_ID, body={"raw": raw})
      )
    except HttpError as e:
      log.error("Failed to send email: %s", e)
      raise
    return SendReceipt(id=sent["id"])

  async def delete(self, email_id: str) -> DeleteReceipt:
    """Move the message to Trash."""
    try:
      await self._execute(self.service.users().messages().trash(userId=USER_ID, id=email_id))
    except HttpError as e:
      if e.resp.status == 404:
        raise EmailNotFoundError(email_id) from e
      log.error("Failed to delete email %s: %s", email_id, e)
      raise
    return DeleteReceipt(success=True)

  async def close(self) -> None:
    close = getattr(self.service, "close", None)
    if close is not None:
      await asyncio.to_thread(close)
