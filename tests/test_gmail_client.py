"""Tests for the Gmail REST backend, against a mocked discovery service."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from skills.gmail.client.backend import EmailNotFoundError
from skills.gmail.client.gmail_client import GmailApiBackend
from skills.gmail.helpers import extract_body, gmail_date, header_map, make_snippet


def http_error(status: int) -> HttpError:
  return HttpError(httplib2.Response({"status": status}), b"")


def b64(text: str) -> str:
  return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


@pytest.fixture
def service():
  return MagicMock()


@pytest.fixture
def messages(service):
  return service.users.return_value.messages.return_value


@pytest.fixture
def backend(service) -> GmailApiBackend:
  return GmailApiBackend(credentials=MagicMock(), service=service)


METADATA = {
  "id": "m1",
  "snippet": "Please find attached",
  "payload": {
    "headers": [
      {"name": "Subject", "value": "Invoice"},
      {"name": "From", "value": "billing@example.com"},
      {"name": "Date", "value": "Tue, 02 Apr 2024 09:15:00 +0000"},
    ]
  },
}


class TestGmailApiBackend:
  @pytest.mark.asyncio
  async def test_search_skips_messages_deleted_meanwhile(self, backend, messages):
    messages.list.return_value.execute.return_value = {"messages": [{"id": "m1"}, {"id": "gone"}]}
    messages.get.return_value.execute.side_effect = [METADATA, http_error(404)]

    results = await backend.search("invoice", 10)

    assert [r.id for r in results] == ["m1"]
    assert results[0].sender == "billing@example.com"
    assert results[0].date == "2024-04-02T09:15:00Z"
    messages.list.assert_called_once_with(userId="me", q="invoice", maxResults=10)

  @pytest.mark.asyncio
  async def test_search_empty_mailbox(self, backend, messages):
    messages.list.return_value.execute.return_value = {}
    assert await backend.search("x", 5) == []

  @pytest.mark.asyncio
  async def test_search_propagates_other_errors(self, backend, messages):
    messages.list.return_value.execute.side_effect = http_error(500)
    with pytest.raises(HttpError):
      await backend.search("x", 5)

  @pytest.mark.asyncio
  async def test_fetch_decodes_plain_text_body(self, backend, messages):
    messages.get.return_value.execute.return_value = {
      "id": "m1",
      "payload": {
        "mimeType": "multipart/alternative",
        "headers": [*METADATA["payload"]["headers"], {"name": "To", "value": "me@example.com"}],
        "parts": [
          {"mimeType": "text/html", "body": {"data": b64("<p>html</p>")}},
          {"mimeType": "text/plain", "body": {"data": b64("plain body")}},
        ],
      },
    }
    detail = await backend.fetch("m1")
    assert detail.body == "plain body"
    assert detail.to == "me@example.com"
    messages.get.assert_called_once_with(userId="me", id="m1", format="full")

  @pytest.mark.asyncio
  async def test_fetch_unknown(self, backend, messages):
    messages.get.return_value.execute.side_effect = http_error(404)
    with pytest.raises(EmailNotFoundError):
      await backend.fetch("nope")

  @pytest.mark.asyncio
  async def test_send_builds_raw_message(self, backend, messages):
    messages.send.return_value.execute.return_value = {"id": "s1"}
    receipt = await backend.send("friend@example.com", "Hello", "Hi there")

    assert receipt.id == "s1"
    assert receipt.status == "sent"
    raw = messages.send.call_args.kwargs["body"]["raw"]
    decoded = base64.urlsafe_b64decode(raw).decode()
    assert "To: friend@example.com" in decoded
    assert "Subject: Hello" in decoded
    assert "Hi there" in decoded

  @pytest.mark.asyncio
  async def test_delete_moves_to_trash(self, backend, messages):
    messages.trash.return_value.execute.return_value = {"id": "m1"}
    receipt = await backend.delete("m1")
    assert receipt.success
    messages.trash.assert_called_once_with(userId="me", id="m1")

  @pytest.mark.asyncio
  async def test_delete_unknown(self, backend, messages):
    messages.trash.return_value.execute.side_effect = http_error(404)
    with pytest.raises(EmailNotFoundError):
      await backend.delete("nope")


class TestHelpers:
  def test_make_snippet(self):
    assert make_snippet("short\n\nbody") == "short body"
    long = make_snippet("word " * 50)
    assert len(long) <= 100
    assert long.endswith("...")

  def test_gmail_date_falls_back_to_internal_date(self):
    assert gmail_date({}, "1712049300000") == "2024-04-02T09:15:00Z"
    assert gmail_date({"date": "garbage"}, None) == ""

  def test_extract_body_html_fallback(self):
    payload = {"mimeType": "text/html", "body": {"data": b64("<b>Hi</b> there")}}
    assert extract_body(payload) == "Hi there"

  def test_header_map(self):
    assert header_map([{"name": "Subject", "value": "x"}]) == {"subject": "x"}
    assert header_map(None) == {}
