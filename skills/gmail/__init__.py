"""Gmail tool provider: search, read, send and delete messages."""
