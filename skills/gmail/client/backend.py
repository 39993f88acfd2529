"""
Mail backend contract. The handlers only ever talk to this interface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
  from ..state.types import DeleteReceipt, EmailDetail, EmailSummary, SendReceipt


class EmailNotFoundError(LookupError):
  def __init__(self, email_id: str) -> None:
    super().__init__(f"Email not found: {email_id}")
    self.email_id = email_id


class MailBackend(Protocol):
  async def search(self, query: str, max_results: int) -> list[EmailSummary]: ...

  async def fetch(self, email_id: str) -> EmailDetail: ...

  async def send(self, to: str, subject: str, body: str) -> SendReceipt: ...

  async def delete(self, email_id: str) -> DeleteReceipt: ...

  async def close(self) -> None: ...
