"""
Client for the Spotify desktop app's local web helper.

The helper listens on 127.0.0.1 (HTTP ports 4381-4389) and accepts commands
when they carry a CSRF token from the helper itself and an OAuth token from
open.spotify.com.  Requests must send an Origin of https://open.spotify.com.

  GET /service/version.json?service=remote     : probe
  GET /simplecsrf/token.json                   : {"token": …}
  GET https://open.spotify.com/token           : {"t": …}
  GET /remote/status.json                      : {playing, volume, shuffle, repeat, track}
  GET /remote/pause.json?pause=true|false
  GET /remote/play.json?uri=…&context=…
"""

import logging

import aiohttp

from ...lib.errors import MediaPlayerError, TransportError, UnexpectedStatusError
from ...lib.rest import RestClient

logger = logging.getLogger("mediaplayer.spotify.local")

OPEN_URL = "https://open.spotify.com"
ORIGIN = "https://open.spotify.com"
HELPER_HOST = "127.0.0.1"
HELPER_PORTS = range(4381, 4390)


class SpotifyClientError(MediaPlayerError):
    """The local helper answered with an error object."""


class SpotifyLocalClient:
    """Talks to the desktop app's web helper."""

    def __init__(self, session: aiohttp.ClientSession, url: str | None = None,
                 open_url: str = OPEN_URL):
        self.session = session
        self.url = url.rstrip("/") if url else None
        self.open_url = open_url.rstrip("/")
        self.csrf_token: str | None = None
        self.oauth_token: str | None = None

    @property
    def ready(self) -> bool:
        return bool(self.url and self.csrf_token and self.oauth_token)

    def _client(self, url: str) -> RestClient:
        client = RestClient(url, self.session, timeout=10)
        client.set_header("Origin", ORIGIN)
        return client

    async def _get_json(self, url: str, **params) -> dict:
        client = self._client(url)
        client.set_params(params)
        response = await client.get()
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))
        data = await response.get_json()
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            raise SpotifyClientError(
                f"Spotify helper error {error.get('type', '?')}: {error.get('message', '')}")
        return data if isinstance(data, dict) else {}

    async def _find_helper(self) -> str:
        for port in HELPER_PORTS:
            url = f"http://{HELPER_HOST}:{port}"
            try:
                await self._get_json(f"{url}/service/version.json", service="remote")
                logger.info("Spotify helper found on port %d", port)
                return url
            except (TransportError, UnexpectedStatusError):
                continue
        raise TransportError("Spotify desktop app not reachable (is it running?)")

    async def connect(self) -> None:
        """Locate the helper and fetch both tokens."""
        if not self.url:
            self.url = await self._find_helper()
        csrf = await self._get_json(f"{self.url}/simplecsrf/token.json")
        self.csrf_token = csrf.get("token")
        oauth = await self._get_json(f"{self.open_url}/token")
        self.oauth_token = oauth.get("t")
        if not self.ready:
            raise SpotifyClientError("Spotify helper did not hand out its tokens")

    async def _remote(self, command: str, **params) -> dict:
        if not self.ready:
            await self.connect()
        return await self._get_json(
            f"{self.url}/remote/{command}.json",
            oauth=self.oauth_token, csrf=self.csrf_token, **params)

    async def get_status(self) -> dict:
        return await self._remote("status")

    async def pause(self, paused: bool = True) -> dict:
        return await self._remote("pause", pause=paused)

    async def play(self, uri: str, context: str | None = None) -> dict:
        return await self._remote("play", uri=uri, context=context or uri)
