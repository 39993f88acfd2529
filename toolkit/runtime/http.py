"""
HTTP request/response binding.

Client side, each outgoing JSON-RPC message is one POST to the provider's
``/mcp`` endpoint and the reply body (if any) is delivered as the incoming
message. Server side, ``create_http_app`` exposes a ``ToolServer`` on the same
endpoint with aiohttp.web.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import aiohttp
from aiohttp import web

from toolkit.runtime.errors import ErrorCode
from toolkit.runtime.transport import Transport, TransportClosedError, TransportError

if TYPE_CHECKING:
  from toolkit.runtime.server import ToolServer

log = logging.getLogger("toolkit.runtime.http")

MCP_PATH = "/mcp"


class HttpClientTransport(Transport):
  def __init__(self, url: str, timeout: float = 30.0, headers: dict[str, str] | None = None, name: str = "http") -> None:
    super().__init__(name)
    self.url = url
    self._timeout = aiohttp.ClientTimeout(total=timeout)
    self._headers = headers or {}
    self._session: aiohttp.ClientSession | None = None

  async def start(self) -> None:
    if self._session is None:
      self._session = aiohttp.ClientSession(headers=self._headers, timeout=self._timeout)

  async def send(self, message: dict[str, Any]) -> None:
    if self.is_closed or self._session is None:
      raise TransportClosedError(f"{self.name} is closed")
    try:
      async with self._session.post(self.url, json=message) as resp:
        if resp.status == 202:
          return
        body = await resp.text()
        if not body:
          if resp.status >= 400:
            raise TransportError(f"{self.name}: HTTP {resp.status}")
          return
        try:
          reply = json.loads(body)
        except json.JSONDecodeError as exc:
          raise TransportError(f"{self.name}: HTTP {resp.status} with non-JSON body") from exc
    except aiohttp.ClientError as exc:
      raise TransportError(f"{self.name}: {exc}") from exc
    except TimeoutError as exc:
      raise TransportError(f"{self.name}: request timed out") from exc
    await self._deliver(reply)

  async def close(self) -> None:
    if self._session is not None:
      await self._session.close()
      self._session = None
    self._mark_closed()


# --------------------------------------------------------------------- #
# Server side
# --------------------------------------------------------------------- #


def create_http_app(server: ToolServer) -> web.Application:
  async def handle_rpc(request: web.Request) -> web.StreamResponse:
    try:
      message = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
      return web.json_response(
        {
          "jsonrpc": "2.0",
          "id": None,
          "error": {"code": int(ErrorCode.PARSE_ERROR), "message": "Parse error"},
        },
        status=400,
      )
    response = await server.handle_message(message)
    if response is None:
      return web.Response(status=202)
    return web.json_response(response)

  app = web.Application()
  app.router.add_post(MCP_PATH, handle_rpc)
  return app


async def serve_http(server: ToolServer, host: str, port: int) -> web.AppRunner:
  """Start the HTTP endpoint; the caller owns ``runner.cleanup()``."""
  runner = web.AppRunner(create_http_app(server))
  await runner.setup()
  site = web.TCPSite(runner, host, port)
  await site.start()
  log.info("Listening on http://%s:%d%s", host, port, MCP_PATH)
  return runner
