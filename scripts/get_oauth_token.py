#!/usr/bin/env python3
"""
Obtain a Gmail refresh token through Google's OAuth consent flow.

Reads GMAIL_CLIENT_ID / GMAIL_CLIENT_SECRET (environment or .env), opens the
consent page, receives the redirect on http://localhost:3000/oauth/callback,
exchanges the code and prints the refresh token to put in .env.

Usage:
    python scripts/get_oauth_token.py
"""

from __future__ import annotations

import asyncio
import html
import logging
import os
import secrets
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode

import aiohttp
from aiohttp import web
from dotenv import load_dotenv

log = logging.getLogger("scripts.oauth")

SCOPES = [
  "https://www.googleapis.com/auth/gmail.readonly",
  "https://www.googleapis.com/auth/gmail.send",
  "https://www.googleapis.com/auth/gmail.modify",
]

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
CALLBACK_HOST = "localhost"
CALLBACK_PORT = 3000
CALLBACK_PATH = "/oauth/callback"
REDIRECT_URI = f"http://{CALLBACK_HOST}:{CALLBACK_PORT}{CALLBACK_PATH}"
CALLBACK_TIMEOUT = 5 * 60

HTML_SUCCESS = """<!DOCTYPE html>
<html><body>
  <h1>Success!</h1>
  <p>You can close this window and return to the terminal.</p>
</body></html>"""

HTML_ERROR = """<!DOCTYPE html>
<html><body>
  <h1>Error: {error}</h1>
</body></html>"""

Exchange = Callable[[str], Awaitable[dict[str, Any]]]


def build_auth_url(client_id: str, state: str) -> str:
  params = {
    "client_id": client_id,
    "redirect_uri": REDIRECT_URI,
    "scope": " ".join(SCOPES),
    "response_type": "code",
    "access_type": "offline",
    "prompt": "consent",
    "state": state,
  }
  return f"{AUTH_ENDPOINT}?{urlencode(params)}"


async def exchange_code(client_id: str, client_secret: str, code: str) -> dict[str, Any]:
  form = {
    "client_id": client_id,
    "client_secret": client_secret,
    "code": code,
    "grant_type": "authorization_code",
    "redirect_uri": REDIRECT_URI,
  }
  async with aiohttp.ClientSession() as session:
    async with session.post(TOKEN_ENDPOINT, data=form) as resp:
      if resp.status != 200:
        raise RuntimeError(f"Failed to exchange code: HTTP {resp.status} {await resp.text()}")
      return await resp.json()


class OAuthCallbackServer:
  """Receives the single redirect of the consent flow."""

  def __init__(self, exchange: Exchange, state: str) -> None:
    self._exchange = exchange
    self._state = state
    self._result: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
    self.app = web.Application()
    self.app.router.add_get(CALLBACK_PATH, self._handle_callback)

  @property
  def result(self) -> asyncio.Future[dict[str, Any]]:
    return self._result

  def _finish(self, value: dict[str, Any] | Exception) -> None:
    if self._result.done():
      return
    if isinstance(value, Exception):
      self._result.set_exception(value)
    else:
      self._result.set_result(value)

  def _error(self, message: str, status: int) -> web.Response:
    return web.Response(text=HTML_ERROR.format(error=html.escape(message)), status=status, content_type="text/html")

  async def _handle_callback(self, request: web.Request) -> web.Response:
    error = request.query.get("error")
    code = request.query.get("code")

    if request.query.get("state") != self._state:
      return self._error("State mismatch", 400)
    if error:
      self._finish(RuntimeError(f"OAuth error: {error}"))
      return self._error(error, 400)
    if not code:
      self._finish(RuntimeError("No authorization code received"))
      return self._error("No authorization code received", 400)

    try:
      tokens = await self._exchange(code)
    except Exception as exc:
      self._finish(exc if isinstance(exc, RuntimeError) else RuntimeError(str(exc)))
      return self._error(str(exc), 500)
    self._finish(tokens)
    return web.Response(text=HTML_SUCCESS, content_type="text/html")


def print_tokens(tokens: dict[str, Any]) -> None:
  print("\nOAuth flow completed successfully!")
  print("\nAdd these to your .env file:")
  print(f"GMAIL_REFRESH_TOKEN={tokens.get('refresh_token', '')}")
  print(f"GMAIL_ACCESS_TOKEN={tokens.get('access_token', '')}")
  if not tokens.get("refresh_token"):
    print("\nNo refresh token received. Make sure access_type=offline and prompt=consent are set.")


async def run_flow(client_id: str, client_secret: str) -> dict[str, Any]:
  state = secrets.token_urlsafe(16)

  async def exchange(code: str) -> dict[str, Any]:
    print("Exchanging authorization code for tokens...")
    return await exchange_code(client_id, client_secret, code)

  server = OAuthCallbackServer(exchange, state)
  runner = web.AppRunner(server.app)
  await runner.setup()
  site = web.TCPSite(runner, CALLBACK_HOST, CALLBACK_PORT)
  await site.start()
  try:
    auth_url = build_auth_url(client_id, state)
    print("Starting OAuth flow...")
    print(f"Local server started on http://{CALLBACK_HOST}:{CALLBACK_PORT}")
    if not webbrowser.open(auth_url):
      print("\nCould not open browser automatically.")
    print("\nWaiting for OAuth callback...")
    print("If the browser doesn't open automatically, copy and paste this URL:")
    print(auth_url)
    return await asyncio.wait_for(server.result, timeout=CALLBACK_TIMEOUT)
  finally:
    await runner.cleanup()


def main() -> int:
  load_dotenv()
  logging.basicConfig(level=logging.INFO, format="[%(name)s] %(levelname)s: %(message)s", stream=sys.stderr)
  client_id = os.environ.get("GMAIL_CLIENT_ID", "")
  client_secret = os.environ.get("GMAIL_CLIENT_SECRET", "")
  if not client_id or not client_secret:
    print("Please set GMAIL_CLIENT_ID and GMAIL_CLIENT_SECRET in your .env file", file=sys.stderr)
    return 1

  try:
    tokens = asyncio.run(run_flow(client_id, client_secret))
  except TimeoutError:
    print("Timed out waiting for the OAuth callback", file=sys.stderr)
    return 1
  except RuntimeError as exc:
    print(f"Error: {exc}", file=sys.stderr)
    return 1
  except KeyboardInterrupt:
    return 130

  print_tokens(tokens)
  return 0


if __name__ == "__main__":
  sys.exit(main())
