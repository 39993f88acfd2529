"""
Gmail provider data types.

Field names are the wire names tool results are serialized with; ``from`` is
exposed as ``sender`` in Python.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EmailSummary(BaseModel):
  model_config = ConfigDict(frozen=True, populate_by_name=True)

  id: str
  subject: str = ""
  sender: str = Field(default="", alias="from")
  date: str = ""
  snippet: str = ""


class EmailDetail(BaseModel):
  model_config = ConfigDict(frozen=True, populate_by_name=True)

  id: str
  subject: str = ""
  sender: str = Field(default="", alias="from")
  to: str = ""
  date: str = ""
  body: str = ""


class SendReceipt(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  status: Literal["sent"] = "sent"


class DeleteReceipt(BaseModel):
  model_config = ConfigDict(frozen=True)

  success: bool = True


class StoredEmail(BaseModel):
  """A message held by the in-memory mailbox."""

  id: str
  subject: str
  sender: str
  to: str
  date: datetime
  body: str
  labels: list[str] = Field(default_factory=lambda: ["INBOX"])
