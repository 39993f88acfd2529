"""
In-memory mailbox. Used when no Gmail credentials are configured, and in tests.
"""

from __future__ import annotations

import itertools
import logging
from datetime import UTC, datetime

from ..helpers import format_date, make_snippet
from ..state.types import DeleteReceipt, EmailDetail, EmailSummary, SendReceipt, StoredEmail
from .backend import EmailNotFoundError

log = logging.getLogger("skill.gmail.client.memory")

MAILBOX_ADDRESS = "me@example.com"


def sample_messages() -> list[StoredEmail]:
  return [
    StoredEmail(
      id="1",
      subject="Invoice #1042 for March",
      sender="billing@acme-supplies.com",
      to=MAILBOX_ADDRESS,
      date=datetime(2024, 4, 2, 9, 15, tzinfo=UTC),
      body=(
        "Hi,\n\nPlease find attached invoice #1042 for March. "
        "Payment is due within 30 days.\n\nThanks,\nAcme Billing"
      ),
    ),
    StoredEmail(
      id="2",
      subject="Team offsite agenda",
      sender="sender@example.com",
      to=MAILBOX_ADDRESS,
      date=datetime(2024, 4, 1, 14, 30, tzinfo=UTC),
      body="Here is the agenda for next week's offsite. Lunch is at noon, talks start at 2pm.",
    ),
    StoredEmail(
      id="3",
      subject="Re: Invoice question",
      sender="accounts@example.org",
      to=MAILBOX_ADDRESS,
      date=datetime(2024, 3, 28, 17, 5, tzinfo=UTC),
      body="Thanks for the quick reply about the invoice. The corrected amount works for us.",
    ),
  ]


def _matches(message: StoredEmail, query: str) -> bool:
  """All terms must match. ``from:`` ``to:`` and ``subject:`` narrow a term to one field."""
  for term in query.lower().split():
    field, _, value = term.partition(":")
    if value and field == "from":
      if value not in message.sender.lower():
        return False
    elif value and field == "to":
      if value not in message.to.lower():
        return False
    elif value and field == "subject":
      if value not in message.subject.lower():
        return False
    else:
      haystack = " ".join((message.subject, message.sender, message.body)).lower()
      if term not in haystack:
        return False
  return True


class MemoryMailBackend:
  def __init__(self, messages: list[StoredEmail] | None = None) -> None:
    seed = sample_messages() if messages is None else messages
    self._messages: dict[str, StoredEmail] = {m.id: m for m in seed}
    self.sent: list[StoredEmail] = []
    self._sent_ids = itertools.count(1)

  @property
  def messages(self) -> list[StoredEmail]:
    return list(self._messages.values())

  async def search(self, query: str, max_results: int) -> list[EmailSummary]:
    hits = [m for m in self._messages.values() if _matches(m, query)]
    hits.sort(key=lambda m: m.date, reverse=True)
    return [
      EmailSummary(
        id=m.id,
        subject=m.subject,
        sender=m.sender,
        date=format_date(m.date),
        snippet=make_snippet(m.body),
      )
      for m in hits[:max_results]
    ]

  async def fetch(self, email_id: str) -> EmailDetail:
    message = self._messages.get(email_id)
    if message is None:
      raise EmailNotFoundError(email_id)
    return EmailDetail(
      id=message.id,
      subject=message.subject,
      sender=message.sender,
      to=message.to,
      date=format_date(message.date),
      body=message.body,
    )

  async def send(self, to: str, subject: str, body: str) -> SendReceipt:
    message = StoredEmail(
      id=f"sent_{next(self._sent_ids)}",
      subject=subject,
      sender=MAILBOX_ADDRESS,
      to=to,
      date=datetime.now(UTC),
      body=body,
      labels=["SENT"],
    )
    self.sent.append(message)
    log.info("Sending email to: %s, Subject: %s", to, subject)
    return SendReceipt(id=message.id)

  async def delete(self, email_id: str) -> DeleteReceipt:
    if self._messages.pop(email_id, None) is None:
      raise EmailNotFoundError(email_id)
    log.info("Deleted email: %s", email_id)
    return DeleteReceipt(success=True)

  async def close(self) -> None:
    return None
