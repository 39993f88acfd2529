"""
Tool Server — asyncio JSON-RPC 2.0 server for tool providers

Providers use this as their entry point. The server handles:
- The initialize handshake and ping
- tools/list from the sealed operation registry
- tools/call through the dispatch engine
- Writing JSON-RPC responses back on whichever transport carried the request

Usage:
    from toolkit.runtime.server import ToolServer, run_provider

    server = ToolServer.from_provider(skill)
    await server.serve(await StdioTransport.open())

    # or, with lifecycle hooks and transport selection
    await run_provider(skill, transport="tcp", port=8765)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from mcp.types import LATEST_PROTOCOL_VERSION

from toolkit.runtime.dispatch import Dispatcher
from toolkit.runtime.errors import ErrorCode, ToolError
from toolkit.runtime.registry import OperationRegistry
from toolkit.types.tool_types import ToolCall, ToolFailure

if TYPE_CHECKING:
  from toolkit.runtime.transport import Transport
  from toolkit.types.tool_types import ProviderDefinition

log = logging.getLogger("toolkit.runtime.server")


class ToolServer:
  """JSON-RPC 2.0 server that exposes a registry of tools."""

  def __init__(self, registry: OperationRegistry, name: str, version: str = "1.0.0") -> None:
    registry.seal()
    self._registry = registry
    self._dispatcher = Dispatcher(registry)
    self.name = name
    self.version = version

  @classmethod
  def from_provider(cls, provider: ProviderDefinition) -> ToolServer:
    return cls(OperationRegistry.from_provider(provider), provider.name, provider.version)

  @property
  def registry(self) -> OperationRegistry:
    return self._registry

  # --------------------------------------------------------------------- #
  # Public API
  # --------------------------------------------------------------------- #

  async def serve(self, transport: Transport) -> None:
    """Serve one connection until its transport closes."""

    async def on_message(message: Any) -> None:
      response = await self.handle_message(message)
      if response is not None:
        await transport.send(response)

    transport.on_message(on_message)
    await transport.start()
    await transport.wait_closed()

  async def handle_message(self, message: Any) -> dict[str, Any] | None:
    """Process one decoded message; returns the response, or None for notifications."""
    if not isinstance(message, dict):
      return _error_response(None, ErrorCode.INVALID_REQUEST, "Request must be a JSON object")

    method = message.get("method")
    msg_id = message.get("id")
    is_notification = "id" not in message

    if not isinstance(method, str):
      if "result" in message or "error" in message:
        log.debug("Ignoring unsolicited response id=%s", msg_id)
        return None
      return _error_response(msg_id, ErrorCode.INVALID_REQUEST, "Missing method")

    try:
      result = await self._dispatch(method, message.get("params"))
    except ToolError as err:
      if is_notification:
        log.warning("Notification %s failed: %s", method, err.message)
        return None
      return _error_response(msg_id, err.code, err.message, err.data)
    except Exception as exc:
      log.exception("Handler for %s failed", method)
      if is_notification:
        return None
      return _error_response(msg_id, ErrorCode.INTERNAL_ERROR, str(exc))

    if is_notification:
      return None
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}

  # --------------------------------------------------------------------- #
  # Internal: method dispatch
  # --------------------------------------------------------------------- #

  async def _dispatch(self, method: str, params: Any) -> Any:
    p = params if isinstance(params, dict) else {}

    if method == "initialize":
      requested = p.get("protocolVersion")
      client = p.get("clientInfo") or {}
      log.info("Client initialized: %s", client.get("name", "unknown"))
      return {
        "protocolVersion": requested if isinstance(requested, str) else LATEST_PROTOCOL_VERSION,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": self.name, "version": self.version},
      }

    if method.startswith("notifications/"):
      return None

    if method == "ping":
      return {}

    if method == "tools/list":
      return {"tools": [d.to_wire() for d in self._registry.list()]}

    if method == "tools/call":
      name = p.get("name")
      if not isinstance(name, str) or not name:
        raise ToolError(ErrorCode.INVALID_PARAMS, "Missing required parameter: name", {"field": "name"})
      call = ToolCall(name=name, arguments=p.get("arguments", {}))
      result = await self._dispatcher.handle(call)
      if isinstance(result, ToolFailure):
        raise result.to_error()
      return result.to_wire()

    raise ToolError(ErrorCode.METHOD_NOT_FOUND, f"Unknown method: {method}")


def _error_response(msg_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
  error: dict[str, Any] = {"code": int(code), "message": message}
  if data is not None:
    error["data"] = data
  return {"jsonrpc": "2.0", "id": msg_id, "error": error}


# --------------------------------------------------------------------- #
# Provider entry point
# --------------------------------------------------------------------- #


async def run_provider(
  provider: ProviderDefinition,
  transport: str = "stdio",
  host: str = "127.0.0.1",
  port: int = 8765,
) -> None:
  """Run ``provider`` until its transport closes (stdio) or the task is cancelled."""
  from toolkit.runtime.http import serve_http
  from toolkit.runtime.transport import StdioTransport, serve_tcp

  server = ToolServer.from_provider(provider)
  if provider.on_load:
    await provider.on_load()
  log.info("%s v%s ready on %s (%d tools)", provider.name, provider.version, transport, len(server.registry))

  try:
    if transport == "stdio":
      await server.serve(await StdioTransport.open())
    elif transport == "tcp":
      tcp = await serve_tcp(server, host, port)
      async with tcp:
        await tcp.serve_forever()
    elif transport == "http":
      runner = await serve_http(server, host, port)
      try:
        await asyncio.Event().wait()
      finally:
        await runner.cleanup()
    else:
      raise ValueError(f"Unknown transport: {transport}")
  finally:
    if provider.on_unload:
      await provider.on_unload()
