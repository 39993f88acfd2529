"""
Entry point for the Gmail provider subprocess.

Run with: python -m skills.gmail                              (stdio)
          python -m skills.gmail --transport tcp --port 8765  (persistent TCP stream)
          python -m skills.gmail --transport http --port 8080 (POST /mcp)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from toolkit.config import configure_logging, load_env
from toolkit.runtime.errors import FatalConfigError

log = logging.getLogger("skill.gmail")


def main(argv: list[str] | None = None) -> int:
  parser = argparse.ArgumentParser(prog="gmail-tool-provider", description="Gmail tool provider")
  parser.add_argument("--transport", choices=("stdio", "tcp", "http"), default="stdio")
  parser.add_argument("--host", default="127.0.0.1")
  parser.add_argument("--port", type=int, default=8765)
  args = parser.parse_args(argv)

  load_env()
  configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

  from .server import run_server

  try:
    asyncio.run(run_server(args.transport, args.host, args.port))
  except FatalConfigError as exc:
    log.error("%s", exc)
    return 2
  except KeyboardInterrupt:
    pass
  return 0


if __name__ == "__main__":
  sys.exit(main())
