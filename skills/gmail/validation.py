"""
Input validation beyond what the tool schemas express.
"""

from __future__ import annotations

import re
from typing import Any

from toolkit.runtime.errors import ErrorCode, ToolError

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# "Jane Doe <jane@example.com>"
_NAMED = re.compile(r"^[^<>]*<([^<>]+)>$")


def _invalid(param_name: str, message: str) -> ToolError:
  return ToolError(ErrorCode.INVALID_PARAMS, message, {"field": param_name})


def validate_email_address(value: Any, param_name: str) -> str:
  """Validate an email address, optionally with a display name."""
  if not isinstance(value, str) or not value.strip():
    raise _invalid(param_name, f"Missing required parameter: {param_name}")
  value = value.strip()
  named = _NAMED.match(value)
  address = named.group(1).strip() if named else value
  if not _EMAIL.match(address):
    raise _invalid(param_name, f"Invalid email address for {param_name}: {value}")
  return value


def validate_email_list(value: Any, param_name: str) -> list[str]:
  """Validate a comma-separated recipient string."""
  if not isinstance(value, str):
    raise _invalid(param_name, f"Invalid {param_name}: must be a string")
  parts = [p.strip() for p in value.split(",") if p.strip()]
  if not parts:
    raise _invalid(param_name, f"Missing required parameter: {param_name}")
  return [validate_email_address(p, param_name) for p in parts]
