"""
Deezer player adapter (type "deezer").

OAuth2 code flow against connect.deezer.com; the token endpoint answers with
a query string (``access_token=…&expires=3600``), not JSON.  ``expires=0``
means the token does not expire (offline_access).

The public API only exposes the library, so this adapter lists playlists
and tracks but cannot drive playback.

  GET https://connect.deezer.com/oauth/auth.php?app_id=&redirect_uri=&perms=
  GET https://connect.deezer.com/oauth/access_token.php?app_id=&secret=&code=
  GET https://api.deezer.com/user/me/playlists?access_token=
  GET https://api.deezer.com/playlist/{id}/tracks?access_token=
"""

import logging

import aiohttp
from yarl import URL

from ..lib.errors import AuthorizationError, ParseError, UnexpectedStatusError
from ..lib.player_base import PlayerStatus, Playlist, Track
from ..lib.registry import DeezerPlayerConfig
from .streaming import StreamingPlayer

logger = logging.getLogger("mediaplayer.deezer")

CONNECT_URL = "https://connect.deezer.com"
API_URL = "https://api.deezer.com"
PERMISSIONS = "basic_access,email"
PAGE_SIZE = 200


def parse_token_response(text: str) -> tuple[str | None, str | None]:
    """``access_token=…&expires=N`` → (token, expires)."""
    text = (text or "").strip()
    if not text or "=" not in text:
        raise ParseError(f"Unexpected Deezer token response: {text[:80]!r}")
    query = URL.build(query_string=text).query
    return query.get("access_token"), query.get("expires")


class DeezerPlayer(StreamingPlayer):
    """Deezer account (library browsing only)."""

    type = "deezer"
    provider = "Deezer"
    cache_namespace = "mediaplayer.deezer"

    def __init__(self, config: DeezerPlayerConfig, session: aiohttp.ClientSession | None = None,
                 *, api_url: str = API_URL, connect_url: str = CONNECT_URL, **kwargs):
        super().__init__(config, session, **kwargs)
        self.api_url = api_url.rstrip("/")
        self.connect_url = connect_url.rstrip("/")

    def credential_fields(self) -> dict:
        return {
            "app_id": self.config.app_id,
            "secret_key": self.config.secret_key,
        }

    # ── Authentication ──

    def authorize_url(self) -> URL:
        return URL(f"{self.connect_url}/oauth/auth.php").with_query({
            "app_id": self.config.app_id,
            "redirect_uri": self.config.redirect_url,
            "perms": PERMISSIONS,
        })

    async def _connect(self) -> bool:
        self.config.validate()
        await self._bearer()
        return True

    async def _bearer(self) -> str:
        token = self.cached_token()
        if token is not None:
            return token.bearer_token
        code = await self.request_authorization_code(self.authorize_url(), self.config.redirect_url)
        return await self._exchange_code(code)

    async def _exchange_code(self, code: str) -> str:
        client = self.rest(f"{self.connect_url}/oauth/access_token.php")
        client.set_params({
            "app_id": self.config.app_id,
            "secret": self.config.secret_key,
            "code": code,
        })
        response = await client.get()
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))

        access_token, expires = parse_token_response(await response.get_string())
        if not access_token:
            raise AuthorizationError("Deezer did not issue an access token")
        token = self.remember_token(access_token, expires, authorization_code=code)
        logger.info("Deezer token for %s obtained (expires in %ss)", self.name, expires)
        return token.bearer_token

    async def _api_get(self, path: str, **params):
        client = self.rest(f"{self.api_url}{path}")
        client.set_param("access_token", await self._bearer())
        client.set_params(params)
        response = await client.get()
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))
        data = await response.get_json()
        error = data.get("error") if isinstance(data, dict) else None
        if error:
            if error.get("type") == "OAuthException":
                self.forget_token()
                raise AuthorizationError(f"Deezer: {error.get('message', 'token rejected')}")
            raise UnexpectedStatusError(int(error.get("code") or response.status), str(response.url))
        return data

    # ── Status ──

    async def get_status(self) -> PlayerStatus:
        # No playback state in the public API
        return PlayerStatus(player=self)

    # ── Playlists ──

    async def fetch_playlists(self) -> list[Playlist] | None:
        data = await self._api_get("/user/me/playlists", limit=PAGE_SIZE)
        return [
            Playlist(id=str(p["id"]), name=p.get("title", ""), player=self, loader=self._load_tracks)
            for p in data.get("data", []) if p.get("id") is not None
        ]

    async def _load_tracks(self, playlist: Playlist) -> list[Track]:
        data = await self._api_get(f"/playlist/{playlist.id}/tracks", limit=PAGE_SIZE)
        return [
            Track(id=str(t["id"]), name=t.get("title", ""), playlist=playlist, starter=self._play_track)
            for t in data.get("data", []) if t.get("id") is not None
        ]

    async def _play_track(self, track: Track) -> bool:
        return self.not_supported("track playback")

    # ── Transport controls ──

    async def play(self) -> bool:
        return self.not_supported("play")

    async def pause(self) -> bool:
        return self.not_supported("pause")

    async def next_track(self) -> bool:
        return self.not_supported("next")

    async def prev_track(self) -> bool:
        return self.not_supported("previous")

    async def set_volume(self, volume: float) -> bool:
        return self.not_supported("volume")

    async def volume_up(self) -> bool:
        return self.not_supported("volume up")

    async def volume_down(self) -> bool:
        return self.not_supported("volume down")

    async def toggle_shuffle(self) -> bool:
        return self.not_supported("shuffle")

    async def toggle_repeat(self) -> bool:
        return self.not_supported("repeat")
