"""
Capability aggregator — many providers, one flat tool namespace.

Providers are connected concurrently; one provider failing to start is logged
and skipped. The merged namespace is built once, by listing every connection
in configuration order, and is read-only afterwards.

Usage:
    async with ToolAggregator() as tools:
        await tools.initialize(configs)
        descriptors = await tools.list_all_tools()
        result = await tools.invoke("search_emails", {"query": "invoice"})
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from toolkit.client.connection import ProviderConnection, connect_provider
from toolkit.runtime.errors import (
  ErrorCode,
  FatalConfigError,
  ProviderConnectionError,
  ToolNameCollisionError,
)
from toolkit.types.provider_types import ProviderConfig
from toolkit.types.tool_types import ToolDefinition, ToolFailure, ToolSuccess

log = logging.getLogger("toolkit.client.aggregator")

Connector = Callable[[ProviderConfig], Awaitable[ProviderConnection]]


class CollisionPolicy(str, Enum):
  # The later-initialized provider silently supersedes the earlier one
  LAST_REGISTERED_WINS = "last_registered_wins"
  REJECT = "reject"


@dataclass(frozen=True)
class NamespaceEntry:
  connection: ProviderConnection
  descriptor: ToolDefinition

  @property
  def provider(self) -> str:
    return self.connection.name


class MergedToolNamespace(Mapping[str, NamespaceEntry]):
  """Read-only mapping of tool name to (owning connection, descriptor)."""

  def __init__(self, entries: dict[str, NamespaceEntry]) -> None:
    self._entries = dict(entries)

  def __getitem__(self, name: str) -> NamespaceEntry:
    return self._entries[name]

  def __iter__(self) -> Iterator[str]:
    return iter(self._entries)

  def __len__(self) -> int:
    return len(self._entries)

  def descriptors(self) -> list[ToolDefinition]:
    return [entry.descriptor for entry in self._entries.values()]


def merge_tool_sets(
  listings: list[tuple[ProviderConnection, list[ToolDefinition]]],
  policy: CollisionPolicy = CollisionPolicy.LAST_REGISTERED_WINS,
) -> MergedToolNamespace:
  """Merge per-provider listings, in order, under ``policy``."""
  entries: dict[str, NamespaceEntry] = {}
  for connection, descriptors in listings:
    for descriptor in descriptors:
      existing = entries.get(descriptor.name)
      if existing is not None and existing.connection is not connection:
        if policy is CollisionPolicy.REJECT:
          raise ToolNameCollisionError(descriptor.name, existing.provider, connection.name)
        log.info(
          "Tool '%s' from '%s' supersedes the one from '%s'",
          descriptor.name,
          connection.name,
          existing.provider,
        )
      entries[descriptor.name] = NamespaceEntry(connection, descriptor)
  return MergedToolNamespace(entries)


class ToolAggregator:
  def __init__(
    self,
    connector: Connector = connect_provider,
    policy: CollisionPolicy = CollisionPolicy.LAST_REGISTERED_WINS,
  ) -> None:
    self._connector = connector
    self._policy = policy
    self._connections: list[ProviderConnection] = []
    self._namespace: MergedToolNamespace | None = None
    self._namespace_lock = asyncio.Lock()

  @property
  def connections(self) -> list[ProviderConnection]:
    return list(self._connections)

  async def __aenter__(self) -> ToolAggregator:
    return self

  async def __aexit__(self, *exc_info: Any) -> None:
    await self.close_all()

  # --------------------------------------------------------------------- #
  # Lifecycle
  # --------------------------------------------------------------------- #

  async def initialize(self, configs: list[ProviderConfig]) -> list[ProviderConnection]:
    """Connect to every provider concurrently; failures are logged and skipped."""
    if self._connections or self._namespace is not None:
      raise FatalConfigError("Aggregator is already initialized")
    seen: set[str] = set()
    for config in configs:
      if config.name in seen:
        raise FatalConfigError(f"Duplicate provider name: {config.name}")
      seen.add(config.name)

    results = await asyncio.gather(
      *(self._connector(config) for config in configs),
      return_exceptions=True,
    )
    for config, result in zip(configs, results):
      if isinstance(result, BaseException):
        if isinstance(result, asyncio.CancelledError):
          raise result
        log.error("Failed to initialize provider '%s': %s", config.name, result)
        continue
      self._connections.append(result)

    log.info("Connected %d of %d provider(s)", len(self._connections), len(configs))
    return self.connections

  async def close_all(self) -> None:
    """Close every connection concurrently. Never raises; failures are logged."""
    connections, self._connections = self._connections, []
    if not connections:
      return
    results = await asyncio.gather(
      *(conn.close() for conn in connections),
      return_exceptions=True,
    )
    for conn, result in zip(connections, results):
      if isinstance(result, BaseException):
        log.error("Error closing provider '%s': %s", conn.name, result)

  # --------------------------------------------------------------------- #
  # Namespace
  # --------------------------------------------------------------------- #

  async def namespace(self) -> MergedToolNamespace:
    """The merged namespace, built on first use and cached."""
    async with self._namespace_lock:
      if self._namespace is None:
        self._namespace = await self._build_namespace()
    return self._namespace

  async def list_all_tools(self) -> list[ToolDefinition]:
    return (await self.namespace()).descriptors()

  async def invoke(self, name: str, arguments: Any) -> ToolSuccess | ToolFailure:
    namespace = await self.namespace()
    entry = namespace.get(name)
    if entry is None:
      return ToolFailure(code=ErrorCode.METHOD_NOT_FOUND, message=f"Unknown tool: {name}", data={"name": name})
    try:
      return await entry.connection.invoke(name, arguments)
    except ProviderConnectionError as exc:
      log.error("Tool '%s' failed on provider '%s': %s", name, entry.provider, exc)
      return ToolFailure(
        code=ErrorCode.INTERNAL_ERROR,
        message=str(exc),
        data={"provider": entry.provider},
      )

  async def _build_namespace(self) -> MergedToolNamespace:
    async def listing(conn: ProviderConnection) -> list[ToolDefinition]:
      return await conn.list_operations()

    results = await asyncio.gather(
      *(listing(conn) for conn in self._connections),
      return_exceptions=True,
    )
    listings: list[tuple[ProviderConnection, list[ToolDefinition]]] = []
    for conn, result in zip(self._connections, results):
      if isinstance(result, BaseException):
        if isinstance(result, asyncio.CancelledError):
          raise result
        log.error("Failed to list tools from provider '%s': %s", conn.name, result)
        continue
      listings.append((conn, result))
    return merge_tool_sets(listings, self._policy)
