# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
RestClient — a small request builder on top of aiohttp.

    client = RestClient("http://localhost:8080/requests/status.xml", session)
    client.set_auth("", "secret")
    client.set_param("command", "pl_next")
    response = await client.get()
    if response.status == 200:
        root = ElementTree.fromstring(await response.get_string())

Headers, query parameters, the body provider and the Authorization header
persist on the client between requests until reset.  Responses read their
body lazily and only once; every later ``get_*`` call reuses the cached
bytes.  Transport failures raise TransportError.  There is no retry here;
callers that want one wrap the request (see retry.py).
"""

import asyncio
import base64
import json
import logging
from typing import Any, Callable

import aiohttp
from yarl import URL

from .errors import ParseError, TransportError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
AUTHORIZATION = "Authorization"
CONTENT_TYPE = "Content-Type"


def basic_auth_value(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class RestResponse:
    """Result of one RestClient request."""

    def __init__(self, client: "RestClient", method: str, url: URL,
                 response: aiohttp.ClientResponse, state=None,
                 owned_session: aiohttp.ClientSession | None = None):
        self.client = client
        self.method = method
        self.url = url
        self.state = state
        self.status = response.status
        self.headers = response.headers
        self._response = response
        self._owned_session = owned_session
        self._body: bytes | None = None

    def __repr__(self):
        return f"<RestResponse {self.method} {self.url} [{self.status}]>"

    async def get_body(self) -> bytes:
        """Read the raw body. Read once, then served from cache."""
        if self._body is None:
            try:
                self._body = await self._response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(f"Reading {self.url} failed: {e}") from e
            finally:
                await self._close()
        return self._body

    async def get_string(self, encoding: str | None = None) -> str:
        body = await self.get_body()
        return body.decode(encoding or self.client.encoding, errors="replace")

    async def get_json(self, encoding: str | None = None) -> Any:
        text = await self.get_string(encoding)
        try:
            return json.loads(text)
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {self.url}: {e}") from e

    async def release(self) -> None:
        """Give the connection back without reading the body."""
        if self._body is None:
            self._response.close()
            self._body = b""
        await self._close()

    async def _close(self) -> None:
        if self._owned_session is not None:
            session, self._owned_session = self._owned_session, None
            await session.close()


class RestClient:
    """Fluent-ish HTTP request builder. Setters return the client."""

    def __init__(self, url: str | URL | None = None,
                 session: aiohttp.ClientSession | None = None,
                 encoding: str = "utf-8", timeout: float = DEFAULT_TIMEOUT):
        self.url = URL(str(url)) if url is not None else None
        self.session = session
        self.encoding = encoding
        self.timeout = timeout
        self.headers: dict[str, str] = {}
        self.params: dict[str, str] = {}
        self._body_provider: Callable[[Any], Any] | None = None
        self._body_state = None

    # ── URL / headers / params ──

    def set_url(self, url: str | URL) -> "RestClient":
        self.url = URL(str(url))
        return self

    def _header_key(self, name: str) -> str | None:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def get_header(self, name: str) -> str | None:
        key = self._header_key(name)
        return self.headers[key] if key is not None else None

    def set_header(self, name: str, value) -> "RestClient":
        """Set a header (names are case-insensitive). None removes it."""
        key = self._header_key(name)
        if key is not None:
            del self.headers[key]
        if value is not None:
            self.headers[name] = str(value)
        return self

    def set_param(self, name: str, value) -> "RestClient":
        """Set a query parameter. None values are skipped."""
        if value is None:
            self.params.pop(name, None)
        elif isinstance(value, bool):
            self.params[name] = "true" if value else "false"
        else:
            self.params[name] = str(value)
        return self

    def set_params(self, params: dict) -> "RestClient":
        for name, value in params.items():
            self.set_param(name, value)
        return self

    # ── Authorization ──

    def set_auth(self, user: str | None, password: str | None) -> "RestClient":
        """Basic auth. Clears the Authorization header when both parts are empty."""
        if not user and not password:
            return self.set_header(AUTHORIZATION, None)
        return self.set_header(AUTHORIZATION, basic_auth_value(user or "", password or ""))

    def set_bearer(self, token: str | None) -> "RestClient":
        if not token:
            return self.set_header(AUTHORIZATION, None)
        return self.set_header(AUTHORIZATION, f"Bearer {token}")

    # ── Body ──

    def set_body_provider(self, provider: Callable[[Any], Any] | None, state=None) -> "RestClient":
        """Body is produced by ``provider(state)`` at request time."""
        self._body_provider = provider
        self._body_state = state
        return self

    def set_body(self, value, content_type: str | None = None) -> "RestClient":
        if content_type:
            self.set_header(CONTENT_TYPE, content_type)
        return self.set_body_provider(lambda _: value)

    def set_json(self, obj, set_content_type: bool = True) -> "RestClient":
        if set_content_type:
            self.set_header(CONTENT_TYPE, f"application/json; charset={self.encoding}")
        return self.set_body_provider(lambda _: json.dumps(obj))

    def set_form(self, params: dict, set_content_type: bool = True) -> "RestClient":
        form = {k: str(v) for k, v in params.items() if v is not None}
        if set_content_type:
            self.set_header(CONTENT_TYPE, "application/x-www-form-urlencoded")
        return self.set_body_provider(lambda _: URL.build(query=form).raw_query_string)

    # ── Reset ──

    def reset_headers(self) -> "RestClient":
        self.headers.clear()
        return self

    def reset_params(self) -> "RestClient":
        self.params.clear()
        return self

    def reset_body(self) -> "RestClient":
        return self.set_body_provider(None)

    def reset(self) -> "RestClient":
        return self.reset_headers().reset_params().reset_body()

    # ── Request ──

    def build_url(self) -> URL:
        if self.url is None:
            raise ValueError("RestClient has no URL")
        url = self.url
        if url.user is not None or url.password is not None:
            url = url.with_user(None)
        if self.params:
            url = url.update_query(self.params)
        return url

    def _encode_body(self):
        if self._body_provider is None:
            return None
        value = self._body_provider(self._body_state)
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        return str(value).encode(self.encoding)

    def _request_headers(self) -> dict[str, str]:
        headers = dict(self.headers)
        if self.get_header(AUTHORIZATION) is None and self.url is not None:
            if self.url.user is not None or self.url.password is not None:
                headers[AUTHORIZATION] = basic_auth_value(self.url.user or "", self.url.password or "")
        return headers

    async def request(self, method: str = "GET", state=None) -> RestResponse:
        method = (method or "GET").upper()
        url = self.build_url()
        headers = self._request_headers()
        data = self._encode_body()

        owned = None
        session = self.session
        if session is None:
            owned = session = aiohttp.ClientSession()

        log.debug("%s %s", method, url)
        try:
            response = await session.request(
                method, url, headers=headers, data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if owned is not None:
                await owned.close()
            raise TransportError(f"{method} {url} failed: {e or type(e).__name__}") from e
        except BaseException:
            if owned is not None:
                await owned.close()
            raise
        return RestResponse(self, method, url, response, state=state, owned_session=owned)

    async def get(self, state=None) -> RestResponse:
        return await self.request("GET", state)

    async def post(self, state=None) -> RestResponse:
        return await self.request("POST", state)

    async def put(self, state=None) -> RestResponse:
        return await self.request("PUT", state)

    async def patch(self, state=None) -> RestResponse:
        return await self.request("PATCH", state)

    async def delete(self, state=None) -> RestResponse:
        return await self.request("DELETE", state)

    async def head(self, state=None) -> RestResponse:
        return await self.request("HEAD", state)

    async def options(self, state=None) -> RestResponse:
        return await self.request("OPTIONS", state)
