"""
Provider connection configuration (client side).

Usage:
    from toolkit.types.provider_types import ProviderConfig
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

TransportKind = Literal["stdio", "tcp", "http"]


class ProviderConfig(BaseModel):
  """How to reach one tool provider."""

  model_config = ConfigDict(frozen=True, extra="forbid")

  name: str = Field(min_length=1, description="Unique provider name")
  transport: TransportKind = "stdio"
  # stdio
  command: str | None = None
  args: list[str] = Field(default_factory=list)
  env: dict[str, str] = Field(default_factory=dict)
  cwd: str | None = None
  # tcp
  host: str = "127.0.0.1"
  port: int | None = Field(default=None, ge=1, le=65535)
  # http
  url: str | None = None
  request_timeout: float = Field(default=30.0, gt=0)

  @model_validator(mode="after")
  def _check_transport_fields(self) -> ProviderConfig:
    if self.transport == "stdio" and not self.command:
      raise ValueError(f"provider '{self.name}': stdio transport requires 'command'")
    if self.transport == "tcp" and self.port is None:
      raise ValueError(f"provider '{self.name}': tcp transport requires 'port'")
    if self.transport == "http" and not self.url:
      raise ValueError(f"provider '{self.name}': http transport requires 'url'")
    return self
