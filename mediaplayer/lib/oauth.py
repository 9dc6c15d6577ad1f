# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
OAuth2 authorization-code capture.

Starts a one-shot aiohttp server on the host/port of the redirect URL
(port defaults to 80 for http and 443 for https), opens the provider's
authorize URL in the browser and waits for the provider to redirect back
with ``?code=…``.  The first request is answered with a short plain-text
confirmation and the server shuts down.

Callers serialise authorization: only one listener per redirect port can
be active at a time.
"""

import asyncio
import inspect
import logging
import ssl
import webbrowser
from typing import Callable

from aiohttp import web
from yarl import URL

from .errors import AuthorizationError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300  # seconds the user gets to log in


async def get_oauth_code(
    provider: str,
    authorize_url: str | URL,
    redirect_url: str | URL,
    *,
    open_url: Callable[[str], object] = webbrowser.open,
    ssl_context: ssl.SSLContext | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str | None:
    """Return the authorization code, or None if the redirect carried none."""
    redirect = URL(str(redirect_url))
    if redirect.scheme not in ("http", "https"):
        raise AuthorizationError(f"Unsupported redirect URL for {provider}: {redirect_url}")
    if redirect.scheme == "https" and ssl_context is None:
        raise AuthorizationError(f"HTTPS redirect for {provider} needs an SSL context")

    host = redirect.host or "localhost"
    port = redirect.port or (443 if redirect.scheme == "https" else 80)

    loop = asyncio.get_running_loop()
    code_future: asyncio.Future = loop.create_future()

    async def handle_redirect(request: web.Request) -> web.StreamResponse:
        if code_future.done():
            return web.Response(status=410, text="Authorization already completed.")
        code = request.query.get("code") or None
        if code is None:
            log.warning("%s redirect without code: %s", provider, request.query.get("error", "?"))
        response = web.Response(
            text=f"Your account has been authorized with {provider}. "
                 "You can close that application / tab now.",
        )
        await response.prepare(request)
        await response.write_eof()
        code_future.set_result(code)
        return response

    app = web.Application()
    app.router.add_route("GET", "/{tail:.*}", handle_redirect)
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port, ssl_context=ssl_context)
        try:
            await site.start()
        except OSError as e:
            raise AuthorizationError(f"Cannot listen on {host}:{port} for {provider} redirect: {e}") from e

        log.info("Waiting for %s authorization on %s", provider, redirect)
        opened = open_url(str(authorize_url))
        if inspect.isawaitable(opened):
            await opened

        try:
            return await asyncio.wait_for(code_future, timeout)
        except asyncio.TimeoutError as e:
            raise AuthorizationError(f"No {provider} authorization within {timeout:.0f}s") from e
    finally:
        await runner.cleanup()
