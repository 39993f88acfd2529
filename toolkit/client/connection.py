"""
Tool provider connection — one live JSON-RPC link to one provider.

The connection owns its transport. Requests are matched to responses by id;
every pending request is failed with ProviderConnectionError when the
transport closes, so a dead provider never leaves a caller waiting.

Usage:
    conn = await connect_provider(ProviderConfig(name="gmail", command="python", args=["-m", "skills.gmail"]))
    tools = await conn.list_operations()
    result = await conn.invoke("search_emails", {"query": "invoice"})
    await conn.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp.types import LATEST_PROTOCOL_VERSION
from pydantic import ValidationError

from toolkit import __version__
from toolkit.runtime.errors import ErrorCode, ProviderConnectionError, ToolError
from toolkit.runtime.http import HttpClientTransport
from toolkit.runtime.transport import SubprocessTransport, TcpClientTransport, Transport, TransportError
from toolkit.types.provider_types import ProviderConfig
from toolkit.types.tool_types import ToolDefinition, ToolFailure, ToolSuccess, result_from_wire

log = logging.getLogger("toolkit.client.connection")

CLIENT_INFO = {"name": "toolkit-agent", "version": __version__}


class ProviderConnection:
  def __init__(self, name: str, transport: Transport, request_timeout: float = 30.0) -> None:
    self.name = name
    self._transport = transport
    self._timeout = request_timeout
    self._pending: dict[int, asyncio.Future[Any]] = {}
    self._next_id = 1
    self.server_info: dict[str, Any] = {}
    transport.on_message(self._on_message)
    transport.on_close(self._fail_pending)

  @property
  def transport(self) -> Transport:
    return self._transport

  @property
  def closed(self) -> bool:
    return self._transport.is_closed

  # --------------------------------------------------------------------- #
  # Public API
  # --------------------------------------------------------------------- #

  async def open(self) -> None:
    """Start the transport and run the initialize handshake."""
    await self._transport.start()
    result = await self._request(
      "initialize",
      {
        "protocolVersion": LATEST_PROTOCOL_VERSION,
        "capabilities": {},
        "clientInfo": CLIENT_INFO,
      },
    )
    if isinstance(result, dict):
      self.server_info = result.get("serverInfo") or {}
    await self._notify("notifications/initialized")
    log.info("[%s] Connected to %s", self.name, self.server_info.get("name", "provider"))

  async def list_operations(self) -> list[ToolDefinition]:
    tools: list[ToolDefinition] = []
    cursor: str | None = None
    while True:
      result = await self._request("tools/list", {"cursor": cursor} if cursor else {})
      if not isinstance(result, dict):
        raise ProviderConnectionError(self.name, "tools/list returned a malformed result")
      for raw in result.get("tools") or []:
        try:
          tools.append(ToolDefinition.model_validate(raw))
        except ValidationError as exc:
          log.warning("[%s] Skipping malformed tool descriptor: %s", self.name, exc)
      cursor = result.get("nextCursor")
      if not cursor:
        return tools

  async def invoke(self, name: str, arguments: Any) -> ToolSuccess | ToolFailure:
    """Call a tool; protocol errors come back as a ToolFailure."""
    try:
      result = await self._request("tools/call", {"name": name, "arguments": arguments})
    except ToolError as err:
      return ToolFailure.from_error(err)
    return result_from_wire(result)

  async def ping(self) -> None:
    await self._request("ping")

  async def close(self) -> None:
    await self._transport.close()
    self._fail_pending()

  # --------------------------------------------------------------------- #
  # Internal: JSON-RPC I/O
  # --------------------------------------------------------------------- #

  async def _request(self, method: str, params: Any = None) -> Any:
    if self.closed:
      raise ProviderConnectionError(self.name, "connection is closed")
    msg_id = self._next_id
    self._next_id += 1
    request: dict[str, Any] = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
      request["params"] = params

    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    self._pending[msg_id] = future
    try:
      await self._transport.send(request)
      return await asyncio.wait_for(future, timeout=self._timeout)
    except TimeoutError:
      raise ProviderConnectionError(self.name, f"{method} timed out after {self._timeout:g}s") from None
    except TransportError as exc:
      raise ProviderConnectionError(self.name, str(exc)) from exc
    finally:
      self._pending.pop(msg_id, None)

  async def _notify(self, method: str, params: Any = None) -> None:
    message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
      message["params"] = params
    try:
      await self._transport.send(message)
    except TransportError as exc:
      raise ProviderConnectionError(self.name, str(exc)) from exc

  async def _on_message(self, message: Any) -> None:
    if not isinstance(message, dict):
      log.warning("[%s] Ignoring non-object message", self.name)
      return

    if "result" in message or "error" in message:
      future = self._pending.get(message.get("id"))  # type: ignore[arg-type]
      if future is None or future.done():
        log.debug("[%s] Response for unknown request id=%s", self.name, message.get("id"))
        return
      if "error" in message:
        err = message["error"] if isinstance(message["error"], dict) else {}
        future.set_exception(
          ToolError(
            err.get("code", ErrorCode.INTERNAL_ERROR),
            err.get("message", "Unknown error"),
            err.get("data"),
          )
        )
      else:
        future.set_result(message.get("result"))
      return

    # Requests from the provider: only ping is supported
    if message.get("method") == "ping" and "id" in message:
      await self._transport.send({"jsonrpc": "2.0", "id": message["id"], "result": {}})
    elif "id" in message:
      await self._transport.send(
        {
          "jsonrpc": "2.0",
          "id": message["id"],
          "error": {"code": int(ErrorCode.METHOD_NOT_FOUND), "message": f"Unknown method: {message.get('method')}"},
        }
      )

  def _fail_pending(self) -> None:
    for future in self._pending.values():
      if not future.done():
        future.set_exception(ProviderConnectionError(self.name, "connection closed"))


async def connect_provider(config: ProviderConfig) -> ProviderConnection:
  """Open the transport described by ``config`` and complete the handshake."""
  try:
    transport: Transport
    if config.transport == "stdio":
      assert config.command is not None
      transport = await SubprocessTransport.spawn(
        config.command,
        config.args,
        env=config.env,
        cwd=config.cwd,
        name=config.name,
      )
    elif config.transport == "tcp":
      assert config.port is not None
      transport = await TcpClientTransport.connect(config.host, config.port, name=config.name)
    else:
      assert config.url is not None
      transport = HttpClientTransport(config.url, timeout=config.request_timeout, name=config.name)
  except OSError as exc:
    raise ProviderConnectionError(config.name, f"cannot start transport: {exc}") from exc

  connection = ProviderConnection(config.name, transport, request_timeout=config.request_timeout)
  try:
    await connection.open()
  except BaseException:
    await connection.close()
    raise
  return connection
