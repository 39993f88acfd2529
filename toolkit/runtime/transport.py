"""
Transport bindings — newline-delimited JSON-RPC over asyncio streams.

A transport moves whole JSON messages across a process boundary. The server
and client code only see ``send``/``on_message``/``close``, so stdio, a child
process, a TCP socket or HTTP (see ``toolkit.runtime.http``) are
interchangeable.

Usage:
    transport = await StdioTransport.open()
    transport.on_message(handle)
    await transport.start()
    await transport.wait_closed()
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
  from toolkit.runtime.server import ToolServer

log = logging.getLogger("toolkit.runtime.transport")

# Tool results can carry whole message bodies; asyncio's 64 KiB default is too small.
STREAM_LIMIT = 16 * 1024 * 1024

MessageHandler = Callable[[Any], Awaitable[None]]
CloseCallback = Callable[[], None]


class TransportError(ConnectionError):
  pass


class TransportClosedError(TransportError):
  pass


class Transport(ABC):
  """Bidirectional message channel."""

  def __init__(self, name: str = "transport") -> None:
    self.name = name
    self._handler: MessageHandler | None = None
    self._close_callbacks: list[CloseCallback] = []
    self._closed = asyncio.Event()

  def on_message(self, handler: MessageHandler) -> None:
    self._handler = handler

  def on_close(self, callback: CloseCallback) -> None:
    self._close_callbacks.append(callback)

  @property
  def is_closed(self) -> bool:
    return self._closed.is_set()

  @abstractmethod
  async def start(self) -> None: ...

  @abstractmethod
  async def send(self, message: dict[str, Any]) -> None: ...

  @abstractmethod
  async def close(self) -> None: ...

  async def wait_closed(self) -> None:
    await self._closed.wait()

  async def _deliver(self, message: Any) -> None:
    if self._handler is None:
      log.warning("[%s] Dropping message, no handler attached", self.name)
      return
    try:
      await self._handler(message)
    except Exception:
      log.exception("[%s] Message handler failed", self.name)

  def _mark_closed(self) -> None:
    if self._closed.is_set():
      return
    self._closed.set()
    for callback in self._close_callbacks:
      try:
        callback()
      except Exception:
        log.exception("[%s] Close callback failed", self.name)


class StreamTransport(Transport):
  """One JSON object per line over an asyncio reader/writer pair."""

  def __init__(
    self,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    name: str = "stream",
  ) -> None:
    super().__init__(name)
    self._reader = reader
    self._writer = writer
    self._read_task: asyncio.Task[None] | None = None

  async def start(self) -> None:
    if self._read_task is None:
      self._read_task = asyncio.create_task(self._read_loop(), name=f"{self.name}-reader")

  async def send(self, message: dict[str, Any]) -> None:
    if self.is_closed:
      raise TransportClosedError(f"{self.name} is closed")
    data = json.dumps(message) + "\n"
    try:
      self._writer.write(data.encode())
      await self._writer.drain()
    except (ConnectionError, RuntimeError) as exc:
      await self.close()
      raise TransportClosedError(f"{self.name}: write failed: {exc}") from exc

  async def close(self) -> None:
    if self._read_task and not self._read_task.done() and self._read_task is not asyncio.current_task():
      self._read_task.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await self._read_task
    await self._close_writer()
    self._mark_closed()

  async def _close_writer(self) -> None:
    if self._writer.is_closing():
      return
    self._writer.close()
    with contextlib.suppress(ConnectionError, OSError, RuntimeError):
      await self._writer.wait_closed()

  async def _read_loop(self) -> None:
    try:
      while True:
        try:
          line = await self._reader.readline()
        except ValueError:
          log.error("[%s] Message exceeds %d bytes, closing", self.name, STREAM_LIMIT)
          break
        except ConnectionError:
          break
        if not line:
          break
        trimmed = line.decode(errors="replace").strip()
        if not trimmed:
          continue
        try:
          message = json.loads(trimmed)
        except json.JSONDecodeError:
          log.warning("[%s] Failed to parse JSON-RPC message: %s", self.name, trimmed[:200])
          continue
        await self._deliver(message)
    finally:
      if not self.is_closed:
        await self._close_writer()
        self._mark_closed()


class StdioTransport(StreamTransport):
  """This process's stdin/stdout. Logging must go to stderr."""

  @classmethod
  async def open(cls) -> StdioTransport:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    transport, _ = await loop.connect_write_pipe(asyncio.BaseProtocol, sys.stdout)
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return cls(reader, writer, name="stdio")

  async def _close_writer(self) -> None:
    # The writer shares the read pipe's protocol, so wait_closed() would
    # wait on stdin rather than stdout.
    if not self._writer.is_closing():
      self._writer.close()


class SubprocessTransport(StreamTransport):
  """Spawns a provider process and talks to it over its stdin/stdout."""

  def __init__(self, process: asyncio.subprocess.Process, name: str = "subprocess") -> None:
    assert process.stdout is not None and process.stdin is not None
    super().__init__(process.stdout, process.stdin, name=name)
    self._process = process

  @classmethod
  async def spawn(
    cls,
    command: str,
    args: list[str] | None = None,
    *,
    env: dict[str, str] | None = None,
    cwd: str | None = None,
    name: str = "subprocess",
  ) -> SubprocessTransport:
    process = await asyncio.create_subprocess_exec(
      command,
      *(args or []),
      stdin=asyncio.subprocess.PIPE,
      stdout=asyncio.subprocess.PIPE,
      env={**os.environ, **(env or {})},
      cwd=cwd,
      limit=STREAM_LIMIT,
    )
    log.debug("[%s] Spawned pid %s: %s", name, process.pid, command)
    return cls(process, name=name)

  @property
  def pid(self) -> int:
    return self._process.pid

  async def close(self) -> None:
    await super().close()
    if self._process.returncode is not None:
      return
    # stdin is closed; a well-behaved provider exits on end-of-stream
    try:
      await asyncio.wait_for(self._process.wait(), timeout=2.0)
      return
    except TimeoutError:
      pass
    with contextlib.suppress(ProcessLookupError):
      self._process.terminate()
    try:
      await asyncio.wait_for(self._process.wait(), timeout=2.0)
    except TimeoutError:
      log.warning("[%s] Provider did not exit, killing pid %s", self.name, self._process.pid)
      with contextlib.suppress(ProcessLookupError):
        self._process.kill()
      await self._process.wait()


class TcpClientTransport(StreamTransport):
  @classmethod
  async def connect(cls, host: str, port: int, name: str = "tcp") -> TcpClientTransport:
    reader, writer = await asyncio.open_connection(host, port, limit=STREAM_LIMIT)
    return cls(reader, writer, name=name)


async def serve_tcp(server: ToolServer, host: str, port: int) -> asyncio.Server:
  """Accept TCP connections, one server session per connection."""

  async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    peer = writer.get_extra_info("peername")
    log.info("Client connected: %s", peer)
    transport = StreamTransport(reader, writer, name=f"tcp:{peer}")
    try:
      await server.serve(transport)
    finally:
      log.info("Client disconnected: %s", peer)

  return await asyncio.start_server(on_connect, host, port, limit=STREAM_LIMIT)
