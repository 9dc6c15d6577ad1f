"""Common fixtures: a scriptable fake HTTP backend and a client session."""

import json
from dataclasses import dataclass, field

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from mediaplayer.lib import retry


@dataclass
class Reply:
    status: int = 200
    body: str | bytes = ""
    content_type: str = "text/plain"
    headers: dict = field(default_factory=dict)

    def build(self) -> web.Response:
        kwargs = {"status": self.status, "headers": self.headers}
        if isinstance(self.body, bytes):
            return web.Response(body=self.body, content_type=self.content_type, **kwargs)
        if self.status == 204:
            return web.Response(**kwargs)
        return web.Response(text=self.body, content_type=self.content_type, **kwargs)


def json_reply(data, status: int = 200) -> Reply:
    return Reply(status, json.dumps(data), "application/json")


def xml_reply(text: str, status: int = 200) -> Reply:
    return Reply(status, text, "text/xml")


@dataclass
class Recorded:
    method: str
    path: str
    query: dict
    headers: dict
    body: bytes


class FakeBackend:
    """HTTP server answering from per-route reply queues, recording every request.

    The last reply of a queue is repeated once the queue runs dry.  Routes
    without replies answer 404.
    """

    def __init__(self):
        self.requests: list[Recorded] = []
        self._routes: dict[tuple[str, str], list] = {}
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._handle)
        self.url = ""

    def on(self, method: str, path: str, *replies) -> "FakeBackend":
        self._routes[(method.upper(), path)] = list(replies)
        return self

    def calls(self, method: str | None = None, path: str | None = None) -> list[Recorded]:
        return [
            r for r in self.requests
            if (method is None or r.method == method.upper()) and (path is None or r.path == path)
        ]

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append(Recorded(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            headers=dict(request.headers),
            body=await request.read(),
        ))
        replies = self._routes.get((request.method, request.path))
        if not replies:
            return web.Response(status=404, text="no route")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(reply):
            reply = reply(request)
        return reply.build()


@pytest.fixture
async def backend():
    """A running FakeBackend; ``backend.url`` is its base URL."""
    fake = FakeBackend()
    server = TestServer(fake.app)
    await server.start_server()
    fake.url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


@pytest.fixture
async def session():
    """A shared aiohttp client session."""
    async with aiohttp.ClientSession() as s:
        yield s


@pytest.fixture
def no_retry_delay(monkeypatch):
    """Make the accepted-retry loop spin without sleeping."""
    monkeypatch.setattr(retry, "RETRY_DELAY", 0)
