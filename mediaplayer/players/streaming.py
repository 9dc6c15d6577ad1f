"""
StreamingPlayer — shared plumbing for the OAuth based streaming adapters.

Handles what Spotify, Napster and Deezer have in common:
  - access tokens kept in adapter state and in the CredentialCache, keyed by
    namespace + player id + credential fields (configs are never written to)
  - the authorization-code round trip through an injectable authorizer
  - playlists sorted by name, with a synthetic "now playing" playlist when
    the authenticated API is unavailable
"""

import logging
import math
import time
from typing import Awaitable, Callable

import aiohttp

from ..lib.cache import AccessToken, CredentialCache, MemoryStore, derive_cache_key
from ..lib.errors import AuthorizationError, MediaPlayerError
from ..lib.oauth import get_oauth_code
from ..lib.player_base import PlayerBase, Playlist, Track
from ..lib.registry import PlayerConfig

logger = logging.getLogger("mediaplayer.streaming")

# (provider, authorize_url, redirect_url) -> code
Authorizer = Callable[[str, str, str], Awaitable[str | None]]

NOW_PLAYING_ID = "now-playing"
NOW_PLAYING_NAME = "Now playing"


class StreamingPlayer(PlayerBase):
    """Base for adapters that authenticate against a streaming service."""

    provider = ""
    cache_namespace = ""

    def __init__(self, config: PlayerConfig, session: aiohttp.ClientSession | None = None, *,
                 cache: CredentialCache | None = None, authorizer: Authorizer | None = None,
                 clock: Callable[[], float] = time.time):
        super().__init__(config, session)
        self.cache = cache or CredentialCache(MemoryStore(), self.cache_namespace, clock=clock)
        self.authorizer = authorizer or get_oauth_code
        self.clock = clock
        self._token: AccessToken | None = None

    # ── Credentials ──

    def credential_fields(self) -> dict:
        """Config fields that identify the account. Changing one changes the key."""
        return {}

    def cache_key(self, kind: str = "token") -> str:
        return derive_cache_key(f"{self.cache_namespace}/{kind}", self.config.id,
                                **self.credential_fields())

    def cached_token(self) -> AccessToken | None:
        """Valid token from adapter state or the cache, else None."""
        now = self.clock()
        if self._token is not None and self._token.is_valid(now):
            return self._token
        token = AccessToken.from_dict(self.cache.get(self.cache_key()))
        if token is not None and token.is_valid(now):
            self._token = token
            return token
        return None

    def remember_token(self, bearer_token: str, expires_in: float,
                       authorization_code: str | None = None) -> AccessToken:
        """Keep a fresh token in adapter state and the cache."""
        try:
            ttl = float(expires_in or 0)
        except (TypeError, ValueError):
            ttl = 0
        token = AccessToken(
            authorization_code=authorization_code,
            bearer_token=bearer_token,
            expires_at=self.clock() + ttl,
        )
        if not bearer_token:
            self.forget_token()
            raise AuthorizationError(f"{self.provider} returned no access token")
        if not self.cache.set(self.cache_key(), token.to_dict(), ttl):
            # No lifetime given: usable for this session only
            logger.warning("%s: token for %s has no expiry, not cached", self.provider, self.name)
            token.expires_at = math.inf
        self._token = token
        return token

    def forget_token(self) -> None:
        self._token = None
        self.cache.remove(self.cache_key())

    async def request_authorization_code(self, authorize_url: str, redirect_url: str) -> str:
        logger.info("Authorizing %s for %s", self.provider, self.name)
        code = await self.authorizer(self.provider, str(authorize_url), str(redirect_url))
        if not code:
            raise AuthorizationError(f"{self.provider} did not return an authorization code")
        return code

    # ── Playlists ──

    async def fetch_playlists(self) -> list[Playlist] | None:
        """Playlists from the authenticated API, None when not authorized."""
        return None

    async def get_playlists(self) -> list[Playlist]:
        try:
            playlists = await self.fetch_playlists()
        except MediaPlayerError as e:
            logger.warning("%s: playlists unavailable, using current track: %s", self.name, e)
            playlists = None
        if playlists is not None:
            return sorted(playlists, key=lambda p: (p.name or "").lower())
        return await self.now_playing_playlists()

    async def now_playing_playlists(self) -> list[Playlist]:
        status = await self.get_status()
        current = status.current_track
        if current is None:
            return []

        playlist = Playlist(id=NOW_PLAYING_ID, name=NOW_PLAYING_NAME, player=self,
                            loader=lambda p: self._now_playing_tracks(p, current))
        return [playlist]

    @staticmethod
    async def _now_playing_tracks(playlist: Playlist, current: Track) -> list[Track]:
        return [Track(id=current.id, name=current.name, playlist=playlist, starter=current.starter)]

    # ── Unsupported operations ──

    def not_supported(self, operation: str) -> bool:
        logger.debug("%s: %s is not supported by %s", self.name, operation, self.provider)
        return False
