"""
Napster player adapter (type "napster").

Authenticates with the OAuth2 password grant and drives playback through the
Napster REST API (JSON, bearer token):

  POST /oauth/token                           — password grant (Basic api_key:api_secret)
  GET  /v1/me/player                          — playback state (204 when idle)
  PUT  /v1/me/player/play | pause
  PUT  /v1/me/player/next | previous          — may answer 202, see retry.py
  PUT  /v1/me/player/volume?volume_percent=N  — may answer 202
  PUT  /v1/me/player/shuffle?state=true|false
  PUT  /v1/me/player/repeat?state=off|track|context
  GET  /v2.2/me/library/playlists
  GET  /v2.2/playlists/{id}/tracks
"""

import logging

import aiohttp

from ..lib.errors import AuthorizationError, UnexpectedStatusError
from ..lib.player_base import PlayerStatus, Playlist, RepeatMode, State, Track
from ..lib.registry import NapsterPlayerConfig
from ..lib.rest import RestResponse
from ..lib.retry import send_until_applied
from .streaming import NOW_PLAYING_ID, StreamingPlayer

logger = logging.getLogger("mediaplayer.napster")

API_URL = "https://api.napster.com"
PAGE_SIZE = 200
VOLUME_STEP = 0.05

COMMAND_OK = (200, 202, 204)

_REPEAT_STATES = {
    "off": RepeatMode.NONE,
    "track": RepeatMode.REPEAT_CURRENT,
    "context": RepeatMode.LOOP_ALL,
}
_NEXT_REPEAT = {
    RepeatMode.NONE: "context",
    RepeatMode.LOOP_ALL: "track",
    RepeatMode.REPEAT_CURRENT: "off",
}


class NapsterPlayer(StreamingPlayer):
    """Napster account controlled through the REST API."""

    type = "napster"
    provider = "Napster"
    cache_namespace = "mediaplayer.napster"

    def __init__(self, config: NapsterPlayerConfig, session: aiohttp.ClientSession | None = None,
                 *, api_url: str = API_URL, **kwargs):
        super().__init__(config, session, **kwargs)
        self.api_url = api_url.rstrip("/")

    def credential_fields(self) -> dict:
        return {
            "api_key": self.config.api_key,
            "api_secret": self.config.api_secret,
            "user": self.config.user,
            "password": self.config.password,
        }

    # ── Authentication ──

    async def _connect(self) -> bool:
        self.config.validate()
        await self._bearer()
        return True

    async def _password_grant(self) -> str:
        client = self.rest(f"{self.api_url}/oauth/token")
        client.set_auth(self.config.api_key, self.config.api_secret)
        client.set_form({
            "username": self.config.user,
            "password": self.config.password,
            "grant_type": "password",
        })
        response = await client.post()
        if response.status in (400, 401):
            await response.release()
            raise AuthorizationError(f"Napster rejected the credentials of '{self.name}'")
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))

        data = await response.get_json()
        token = self.remember_token(data.get("access_token"), data.get("expires_in"))
        logger.info("Napster token for %s obtained (expires in %ss)", self.name, data.get("expires_in"))
        return token.bearer_token

    async def _bearer(self) -> str:
        token = self.cached_token()
        if token is not None:
            return token.bearer_token
        return await self._password_grant()

    async def _send(self, method: str, path: str, *, params: dict | None = None,
                    json_body=None, reauth: bool = True) -> RestResponse:
        client = self.rest(f"{self.api_url}{path}")
        client.set_bearer(await self._bearer())
        if params:
            client.set_params(params)
        if json_body is not None:
            client.set_json(json_body)
        response = await client.request(method)
        if response.status == 401 and reauth:
            # Token revoked or expired early: one fresh grant, then give up
            await response.release()
            self.forget_token()
            return await self._send(method, path, params=params, json_body=json_body, reauth=False)
        return response

    async def _get_json(self, path: str, **params):
        response = await self._send("GET", path, params=params)
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))
        return await response.get_json()

    async def _player_command(self, command: str, **kwargs) -> bool:
        response = await self._send("PUT", f"/v1/me/player/{command}", **kwargs)
        await response.release()
        if response.status not in COMMAND_OK:
            raise UnexpectedStatusError(response.status, str(response.url))
        logger.debug("%s: %s", self.name, command)
        return True

    async def _player_command_until_applied(self, command: str, **params) -> bool:
        path = f"/v1/me/player/{command}"
        return await send_until_applied(lambda: self._send("PUT", path, params=params))

    # ── Status ──

    async def get_status(self) -> PlayerStatus:
        status = PlayerStatus(player=self)
        response = await self._send("GET", "/v1/me/player")
        if response.status == 204:
            await response.release()
            return status
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))

        data = await response.get_json() or {}
        item = data.get("item") or None
        if data.get("is_playing"):
            status.state = State.PLAYING
        elif item:
            status.state = State.PAUSED

        device = data.get("device") or {}
        percent = device.get("volume_percent")
        if isinstance(percent, (int, float)):
            status.volume = max(0, min(100, percent)) / 100
        if isinstance(data.get("shuffle_state"), bool):
            status.is_shuffle = data["shuffle_state"]
        status.repeat = _REPEAT_STATES.get(data.get("repeat_state"))

        if item and item.get("id"):
            status.current_track = Track(id=str(item["id"]), name=item.get("name", ""),
                                         playlist=None, starter=self._play_track)
        return status

    # ── Playlists ──

    async def fetch_playlists(self) -> list[Playlist] | None:
        data = await self._get_json("/v2.2/me/library/playlists", limit=PAGE_SIZE)
        return [
            Playlist(id=str(p["id"]), name=p.get("name", ""), player=self, loader=self._load_tracks)
            for p in data.get("playlists", []) if p.get("id")
        ]

    async def _load_tracks(self, playlist: Playlist) -> list[Track]:
        data = await self._get_json(f"/v2.2/playlists/{playlist.id}/tracks", limit=PAGE_SIZE)
        return [
            Track(id=str(t["id"]), name=t.get("name", ""), playlist=playlist, starter=self._play_track)
            for t in data.get("tracks", []) if t.get("id")
        ]

    async def _play_track(self, track: Track) -> bool:
        body = {"uris": [track.id]}
        if track.playlist is not None and track.playlist.id != NOW_PLAYING_ID:
            body["context"] = track.playlist.id
        return await self._player_command("play", json_body=body)

    # ── Transport controls ──

    async def play(self) -> bool:
        return await self._player_command("play")

    async def pause(self) -> bool:
        return await self._player_command("pause")

    async def next_track(self) -> bool:
        return await self._player_command_until_applied("next")

    async def prev_track(self) -> bool:
        return await self._player_command_until_applied("previous")

    async def set_volume(self, volume: float) -> bool:
        percent = round(max(0.0, min(1.0, volume)) * 100)
        return await self._player_command_until_applied("volume", volume_percent=percent)

    async def _step_volume(self, delta: float) -> bool:
        status = await self.get_status()
        if status.volume is None:
            return self.not_supported("relative volume without a known volume")
        return await self.set_volume(status.volume + delta)

    async def volume_up(self) -> bool:
        return await self._step_volume(VOLUME_STEP)

    async def volume_down(self) -> bool:
        return await self._step_volume(-VOLUME_STEP)

    async def toggle_shuffle(self) -> bool:
        status = await self.get_status()
        return await self._player_command("shuffle", params={"state": not status.is_shuffle})

    async def toggle_repeat(self) -> bool:
        status = await self.get_status()
        state = _NEXT_REPEAT.get(status.repeat, "context")
        return await self._player_command("repeat", params={"state": state})
