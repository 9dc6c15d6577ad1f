"""
Spotify player adapter (type "spotify").

Playback goes through the desktop app's local helper (see local.py); the
library comes from the Web API once the account has been authorized
(``await player.authorize()``).  Without authorization the playlist view
falls back to the track that is currently playing.
"""

import logging

import aiohttp

from ...lib.errors import UnexpectedStatusError
from ...lib.player_base import PlayerStatus, Playlist, RepeatMode, State, Track
from ...lib.registry import SpotifyPlayerConfig
from ..streaming import NOW_PLAYING_ID, StreamingPlayer
from .auth import ACCOUNTS_URL, build_auth_url, exchange_code
from .local import SpotifyLocalClient

logger = logging.getLogger("mediaplayer.spotify")

API_URL = "https://api.spotify.com"
PAGE_SIZE = 50


class SpotifyPlayer(StreamingPlayer):
    """Spotify desktop app plus Web API library access."""

    type = "spotify"
    provider = "Spotify"
    cache_namespace = "mediaplayer.spotify"

    def __init__(self, config: SpotifyPlayerConfig, session: aiohttp.ClientSession | None = None,
                 *, local: SpotifyLocalClient | None = None, api_url: str = API_URL,
                 accounts_url: str = ACCOUNTS_URL, **kwargs):
        super().__init__(config, session, **kwargs)
        self._local = local
        self.api_url = api_url.rstrip("/")
        self.accounts_url = accounts_url.rstrip("/")

    @property
    def local(self) -> SpotifyLocalClient:
        if self._local is None:
            self._local = SpotifyLocalClient(self.session, self.config.local_url)
        return self._local

    def credential_fields(self) -> dict:
        return {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "redirect_url": self.config.redirect_url,
        }

    # ── Lifecycle / authorization ──

    async def _connect(self) -> bool:
        await self.local.connect()
        return True

    @property
    def is_authorized(self) -> bool:
        return self.cached_token() is not None

    async def authorize(self) -> bool:
        """Make sure a Web API token is available, running the OAuth flow if needed."""
        self.config.validate()
        if self.cached_token() is not None:
            return True
        url = build_auth_url(self.config.client_id, self.config.redirect_url,
                             accounts_url=self.accounts_url)
        code = await self.request_authorization_code(url, self.config.redirect_url)
        tokens = await exchange_code(self.session, code, self.config.client_id,
                                     self.config.client_secret, self.config.redirect_url,
                                     accounts_url=self.accounts_url)
        self.remember_token(tokens.get("access_token"), tokens.get("expires_in"),
                            authorization_code=code)
        logger.info("Spotify Web API authorized for %s", self.name)
        return True

    # ── Web API ──

    async def _api_get(self, url: str, **params) -> dict | None:
        """GET a Web API URL, None when not authorized."""
        token = self.cached_token()
        if token is None:
            return None
        client = self.rest(url)
        client.set_bearer(token.bearer_token)
        client.set_params(params)
        response = await client.get()
        if response.status == 401:
            await response.release()
            self.forget_token()
            return None
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))
        return await response.get_json()

    async def _api_items(self, path: str, **params) -> list | None:
        """All items of a paged Web API collection, None when not authorized."""
        data = await self._api_get(f"{self.api_url}{path}", **params)
        if data is None:
            return None
        items = []
        while data is not None:
            items.extend(data.get("items") or [])
            next_url = data.get("next")
            if not next_url:
                break
            data = await self._api_get(next_url)
        return items

    # ── Status ──

    async def get_status(self) -> PlayerStatus:
        data = await self.local.get_status()
        status = PlayerStatus(player=self)

        resource = (data.get("track") or {}).get("track_resource") or {}
        if data.get("playing"):
            status.state = State.PLAYING
        elif resource:
            status.state = State.PAUSED

        volume = data.get("volume")
        if isinstance(volume, (int, float)):
            status.volume = max(0.0, min(1.0, float(volume)))
        if isinstance(data.get("shuffle"), bool):
            status.is_shuffle = data["shuffle"]
        if isinstance(data.get("repeat"), bool):
            status.repeat = RepeatMode.LOOP_ALL if data["repeat"] else RepeatMode.NONE

        if resource.get("uri"):
            status.current_track = Track(id=resource["uri"], name=resource.get("name", ""),
                                         playlist=None, starter=self._play_track)
        return status

    # ── Playlists ──

    async def fetch_playlists(self) -> list[Playlist] | None:
        items = await self._api_items("/v1/me/playlists", limit=PAGE_SIZE)
        if items is None:
            return None
        playlists = []
        for item in items:
            if not item or not item.get("id"):
                continue
            playlists.append(Playlist(id=item["id"], name=item.get("name", ""), player=self,
                                      loader=self._load_tracks, uri=item.get("uri")))
        return playlists

    async def _load_tracks(self, playlist: Playlist) -> list[Track]:
        items = await self._api_items(f"/v1/playlists/{playlist.id}/tracks",
                                      fields="items(track(uri,name)),next", limit=100)
        tracks = []
        for item in items or []:
            track = (item or {}).get("track") or {}
            if track.get("uri"):
                tracks.append(Track(id=track["uri"], name=track.get("name", ""),
                                    playlist=playlist, starter=self._play_track))
        return tracks

    async def _play_track(self, track: Track) -> bool:
        context = None
        if track.playlist is not None and track.playlist.id != NOW_PLAYING_ID:
            context = track.playlist.uri
        await self.local.play(track.id, context)
        logger.info("Playing %s", track.name or track.id)
        return True

    # ── Transport controls ──

    async def play(self) -> bool:
        await self.local.pause(False)
        return True

    async def pause(self) -> bool:
        await self.local.pause(True)
        return True

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
