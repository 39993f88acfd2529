"""Tests for ProviderConnection request/response matching."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from toolkit.client.connection import ProviderConnection
from toolkit.runtime.errors import ErrorCode, ProviderConnectionError
from toolkit.runtime.transport import Transport
from toolkit.types.tool_types import ToolFailure, ToolSuccess


class ScriptedTransport(Transport):
  """Answers each request from a ``method -> reply`` table.

  A reply is a result, a callable ``params -> result``, an ``("error", {...})``
  tuple, or ``None`` to leave the request unanswered.
  """

  def __init__(self, replies: dict[str, Any]) -> None:
    super().__init__("scripted")
    self.replies = replies
    self.sent: list[dict[str, Any]] = []

  async def start(self) -> None:
    pass

  async def send(self, message: dict[str, Any]) -> None:
    self.sent.append(message)
    if "id" not in message or "method" not in message:
      return
    reply = self.replies.get(message["method"])
    if reply is None:
      return
    if callable(reply):
      reply = reply(message.get("params"))
    if isinstance(reply, tuple) and reply[0] == "error":
      payload = {"jsonrpc": "2.0", "id": message["id"], "error": reply[1]}
    else:
      payload = {"jsonrpc": "2.0", "id": message["id"], "result": reply}
    asyncio.get_running_loop().call_soon(lambda: asyncio.ensure_future(self._deliver(payload)))

  async def close(self) -> None:
    self._mark_closed()


INIT = {"protocolVersion": "2024-11-05", "capabilities": {}, "serverInfo": {"name": "fake", "version": "0.1"}}


def tool(name: str) -> dict[str, Any]:
  return {"name": name, "description": name, "inputSchema": {"type": "object", "properties": {}}}


class TestProviderConnection:
  @pytest.mark.asyncio
  async def test_handshake(self):
    transport = ScriptedTransport({"initialize": INIT})
    conn = ProviderConnection("fake", transport)
    await conn.open()
    assert conn.server_info == {"name": "fake", "version": "0.1"}
    assert [m["method"] for m in transport.sent] == ["initialize", "notifications/initialized"]
    assert "id" not in transport.sent[1]

  @pytest.mark.asyncio
  async def test_list_follows_cursor_and_skips_malformed(self):
    def listing(params):
      if params and params.get("cursor") == "page2":
        return {"tools": [tool("c")]}
      return {"tools": [tool("a"), {"description": "no name"}, tool("b")], "nextCursor": "page2"}

    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT, "tools/list": listing}))
    await conn.open()
    assert [t.name for t in await conn.list_operations()] == ["a", "b", "c"]

  @pytest.mark.asyncio
  async def test_error_response_becomes_failure(self):
    error = ("error", {"code": -32004, "message": "Email not found: 9", "data": {"emailId": "9"}})
    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT, "tools/call": error}))
    await conn.open()
    result = await conn.invoke("get_email", {"emailId": "9"})
    assert isinstance(result, ToolFailure)
    assert result.code == ErrorCode.NOT_FOUND
    assert result.data == {"emailId": "9"}

  @pytest.mark.asyncio
  async def test_in_band_error_result(self):
    reply = {"content": [{"type": "text", "text": "quota exceeded"}], "isError": True}
    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT, "tools/call": reply}))
    await conn.open()
    result = await conn.invoke("search", {})
    assert result.code == ErrorCode.INTERNAL_ERROR
    assert result.message == "quota exceeded"

  @pytest.mark.asyncio
  async def test_success_drops_unknown_blocks(self):
    reply = {"content": [{"type": "text", "text": "ok"}, {"type": "audio", "data": "x"}]}
    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT, "tools/call": reply}))
    await conn.open()
    result = await conn.invoke("search", {})
    assert isinstance(result, ToolSuccess)
    assert result.text == "ok"
    assert len(result.content) == 1

  @pytest.mark.asyncio
  async def test_request_timeout(self):
    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT}), request_timeout=0.05)
    await conn.open()
    with pytest.raises(ProviderConnectionError, match="ping timed out"):
      await conn.ping()
    assert conn._pending == {}

  @pytest.mark.asyncio
  async def test_close_fails_pending_requests(self):
    transport = ScriptedTransport({"initialize": INIT})
    conn = ProviderConnection("fake", transport, request_timeout=5)
    await conn.open()
    pending = asyncio.create_task(conn.ping())
    await asyncio.sleep(0)
    await transport.close()
    with pytest.raises(ProviderConnectionError, match="closed"):
      await pending

  @pytest.mark.asyncio
  async def test_requests_after_close(self):
    conn = ProviderConnection("fake", ScriptedTransport({"initialize": INIT}))
    await conn.open()
    await conn.close()
    with pytest.raises(ProviderConnectionError, match="closed"):
      await conn.list_operations()

  @pytest.mark.asyncio
  async def test_answers_provider_ping(self):
    transport = ScriptedTransport({"initialize": INIT})
    conn = ProviderConnection("fake", transport)
    await conn.open()
    await transport._deliver({"jsonrpc": "2.0", "id": 99, "method": "ping"})
    await transport._deliver({"jsonrpc": "2.0", "id": 100, "method": "sampling/createMessage"})
    assert transport.sent[-2] == {"jsonrpc": "2.0", "id": 99, "result": {}}
    assert transport.sent[-1]["error"]["code"] == ErrorCode.METHOD_NOT_FOUND
