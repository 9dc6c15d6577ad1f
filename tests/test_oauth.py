"""Tests for the one-shot OAuth redirect listener."""

import socket

import aiohttp
import pytest
from aiohttp.test_utils import unused_port

from mediaplayer.lib.errors import AuthorizationError
from mediaplayer.lib.oauth import get_oauth_code


async def test_code_is_captured_and_listener_closes(session):
    port = unused_port()
    redirect = f"http://127.0.0.1:{port}/callback"
    pages = []

    async def browser(url):
        assert url == "https://provider.test/authorize?x=1"
        async with session.get(f"{redirect}?code=abc123&state=s") as resp:
            pages.append(await resp.text())

    code = await get_oauth_code("Deezer", "https://provider.test/authorize?x=1", redirect,
                                open_url=browser, timeout=5)

    assert code == "abc123"
    assert pages == ["Your account has been authorized with Deezer. You can close that application / tab now."]
    with pytest.raises(aiohttp.ClientError):
        async with session.get(f"{redirect}?code=again"):
            pass


async def test_redirect_without_code_returns_none(session):
    port = unused_port()
    redirect = f"http://127.0.0.1:{port}/cb"

    async def browser(url):
        async with session.get(f"{redirect}?error=access_denied") as resp:
            await resp.text()

    assert await get_oauth_code("Spotify", "https://x.test/", redirect, open_url=browser, timeout=5) is None


async def test_timeout_raises_authorization_error():
    port = unused_port()
    with pytest.raises(AuthorizationError):
        await get_oauth_code("Napster", "https://x.test/", f"http://127.0.0.1:{port}/cb",
                             open_url=lambda url: True, timeout=0.05)


async def test_busy_port_raises_authorization_error():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        port = sock.getsockname()[1]
        with pytest.raises(AuthorizationError):
            await get_oauth_code("Deezer", "https://x.test/", f"http://127.0.0.1:{port}/cb",
                                 open_url=lambda url: True, timeout=1)


async def test_https_redirect_needs_ssl_context():
    with pytest.raises(AuthorizationError):
        await get_oauth_code("Deezer", "https://x.test/", "https://localhost/cb",
                             open_url=lambda url: True)
