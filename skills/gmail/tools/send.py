"""
Send tools (1 tool).
"""

from __future__ import annotations

from mcp.types import Tool

send_tools: list[Tool] = [
  Tool(
    name="send_email",
    description="Send a new email",
    inputSchema={
      "type": "object",
      "properties": {
        "to": {
          "type": "string",
          "description": "Recipient email address (or comma-separated list)",
          "minLength": 1,
        },
        "subject": {"type": "string", "description": "Email subject"},
        "body": {"type": "string", "description": "Email body content"},
      },
      "required": ["to", "subject", "body"],
    },
  ),
]
