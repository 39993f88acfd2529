"""
Mailbox management tools (1 tool).
"""

from __future__ import annotations

from mcp.types import Tool

manage_tools: list[Tool] = [
  Tool(
    name="delete_email",
    description="Delete a specific email",
    inputSchema={
      "type": "object",
      "properties": {
        "emailId": {
          "type": "string",
          "description": "The ID of the email to delete",
          "minLength": 1,
        },
      },
      "required": ["emailId"],
    },
  ),
]
