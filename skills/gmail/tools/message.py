"""
Message read tools (2 tools).
"""

from __future__ import annotations

from mcp.types import Tool

message_tools: list[Tool] = [
  Tool(
    name="search_emails",
    description="Search for emails in Gmail",
    inputSchema={
      "type": "object",
      "properties": {
        "query": {
          "type": "string",
          "description": "Search query for emails (Gmail search syntax, e.g. 'from:sender@example.com invoice')",
          "minLength": 1,
        },
        "maxResults": {
          "type": "integer",
          "description": "Maximum number of results to return",
          "default": 10,
          "minimum": 1,
          "maximum": 100,
        },
      },
      "required": ["query"],
    },
  ),
  Tool(
    name="get_email",
    description="Get details of a specific email",
    inputSchema={
      "type": "object",
      "properties": {
        "emailId": {
          "type": "string",
          "description": "The ID of the email to retrieve",
          "minLength": 1,
        },
      },
      "required": ["emailId"],
    },
  ),
]
