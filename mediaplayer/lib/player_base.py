# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PlayerBase — shared plumbing for every player adapter.

An adapter talks to one backend (VLC, Spotify, Napster, Deezer) and exposes
the same asynchronous command surface for all of them.

Subclass contract:

    class MyPlayer(PlayerBase):
        type = "myplayer"

        async def _connect(self) -> bool: ...          # reachability / auth
        async def get_status(self) -> PlayerStatus: ...
        async def get_playlists(self) -> list[Playlist]: ...
        async def play(self) -> bool: ...
        async def pause(self) -> bool: ...
        async def next_track(self) -> bool: ...
        async def prev_track(self) -> bool: ...
        async def set_volume(self, volume: float) -> bool: ...
        async def volume_up(self) -> bool: ...
        async def volume_down(self) -> bool: ...
        async def toggle_shuffle(self) -> bool: ...
        async def toggle_repeat(self) -> bool: ...

Built-in (no override needed):
    connect() / disconnect()          — lifecycle + connectivity events
    add_listener(cb) / remove_listener(cb)
    search_playlists(expr) / search_tracks(expr)
    find_track(track_id)
    dispose()                         — closes the owned HTTP session

Command methods return True when the backend is believed to have applied
the command and False when the backend does not offer it.  Failures raise
(TransportError, UnexpectedStatusError, ParseError, …).

Lifecycle: DISCONNECTED → CONNECTING → CONNECTED → DISCONNECTED | DISPOSED.
DISPOSED is terminal.
"""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import aiohttp

from .registry import PlayerConfig
from .rest import RestClient
from .search import filter_by_name, to_search_expression_parts, matches

log = logging.getLogger(__name__)


class State(enum.Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class RepeatMode(enum.Enum):
    NONE = "none"
    REPEAT_CURRENT = "repeat_current"
    LOOP_ALL = "loop_all"


class ConnectionEvent(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DISPOSED = "disposed"


class Lifecycle(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISPOSED = "disposed"


Listener = Callable[[ConnectionEvent, "PlayerBase"], None]


# ── Data model ──

@dataclass(eq=False)
class Playlist:
    """A playlist. Tracks are fetched from the backend on every call."""

    id: str
    name: str
    player: "PlayerBase" = field(repr=False)
    loader: Callable[["Playlist"], Awaitable[list["Track"]]] = field(repr=False)
    uri: str | None = None

    async def get_tracks(self) -> list["Track"]:
        return await self.loader(self)


@dataclass(eq=False)
class Track:
    """A playable track bound to the backend request that starts it."""

    id: str
    name: str
    playlist: Playlist | None = field(repr=False)
    starter: Callable[["Track"], Awaitable[bool]] = field(repr=False)
    _pending: asyncio.Future | None = field(default=None, init=False, repr=False)

    async def play(self) -> bool:
        """Start this track. Overlapping calls share one backend request."""
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._play_once())
        return await asyncio.shield(self._pending)

    async def _play_once(self) -> bool:
        try:
            return await self.starter(self)
        finally:
            self._pending = None


@dataclass
class PlayerStatus:
    player: "PlayerBase | None" = field(default=None, repr=False)
    state: State = State.STOPPED
    volume: float | None = None
    is_shuffle: bool | None = None
    repeat: RepeatMode | None = None
    current_track: Track | None = None

    @property
    def is_mute(self) -> bool | None:
        if self.volume is None:
            return None
        return self.volume <= 0

    @property
    def is_connected(self) -> bool:
        return bool(self.player and self.player.is_connected)

    def to_dict(self) -> dict:
        track = self.current_track
        return {
            "player": self.player.name if self.player else None,
            "connected": self.is_connected,
            "state": self.state.value,
            "volume": self.volume,
            "mute": self.is_mute,
            "shuffle": self.is_shuffle,
            "repeat": self.repeat.value if self.repeat else None,
            "track": {
                "id": track.id,
                "name": track.name,
                "playlist": track.playlist.name if track.playlist else None,
            } if track else None,
        }


@dataclass
class PlaylistSearchResult:
    expression: str
    playlists: list[Playlist]


@dataclass
class TrackSearchResult:
    expression: str
    tracks: list[Track]


# ── Adapter base ──

class PlayerBase(ABC):
    """Base class for player adapters."""

    type = ""

    def __init__(self, config: PlayerConfig, session: aiohttp.ClientSession | None = None):
        self.config = config
        self._http_session = session
        self._owns_session = session is None
        self._listeners: list[Listener] = []
        self.lifecycle = Lifecycle.DISCONNECTED
        # True / False, None once disposed
        self._connected: bool | None = False

    def __repr__(self):
        return f"<{type(self).__name__} #{self.id} {self.name!r} {self.lifecycle.value}>"

    @property
    def id(self) -> int:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.display_name

    @property
    def is_connected(self) -> bool:
        return self._connected is True

    @property
    def is_disposed(self) -> bool:
        return self.lifecycle is Lifecycle.DISPOSED

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
            self._owns_session = True
        return self._http_session

    def rest(self, url) -> RestClient:
        return RestClient(url, self.session)

    # ── Connectivity notifications ──

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to connectivity changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: Listener) -> bool:
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def _set_connected(self, value: bool | None) -> None:
        """Update the connected flag, notifying listeners only on change."""
        if value == self._connected:
            return
        self._connected = value
        if value is None:
            event = ConnectionEvent.DISPOSED
        elif value:
            event = ConnectionEvent.CONNECTED
        else:
            event = ConnectionEvent.DISCONNECTED
        log.debug("%s: %s", self.name, event.value)
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                log.exception("Connectivity listener failed for %s", self.name)

    # ── Lifecycle ──

    async def connect(self) -> bool:
        """Connect once. False if already connected, connecting or disposed."""
        if self.lifecycle is not Lifecycle.DISCONNECTED:
            return False
        self.lifecycle = Lifecycle.CONNECTING
        try:
            ok = await self._connect()
        except BaseException:
            if self.lifecycle is Lifecycle.CONNECTING:
                self.lifecycle = Lifecycle.DISCONNECTED
            raise
        if self.lifecycle is not Lifecycle.CONNECTING:
            # disposed while connecting
            return False
        if not ok:
            self.lifecycle = Lifecycle.DISCONNECTED
            return False
        self.lifecycle = Lifecycle.CONNECTED
        self._set_connected(True)
        log.info("Connected to %s (%s)", self.name, self.type)
        return True

    async def disconnect(self) -> bool:
        if self.lifecycle is not Lifecycle.CONNECTED:
            return False
        self.lifecycle = Lifecycle.DISCONNECTED
        self._set_connected(False)
        return True

    async def dispose(self) -> None:
        """Release the HTTP session and drop all listeners. Safe to repeat."""
        if self.lifecycle is Lifecycle.DISPOSED:
            return
        self.lifecycle = Lifecycle.DISPOSED
        try:
            await self.on_dispose()
        finally:
            if self._owns_session and self._http_session is not None and not self._http_session.closed:
                await self._http_session.close()
            self._set_connected(None)
            self._listeners.clear()

    async def on_dispose(self) -> None:
        """Hook for adapter specific cleanup."""

    @abstractmethod
    async def _connect(self) -> bool: ...

    # ── Backend operations ──

    @abstractmethod
    async def get_status(self) -> PlayerStatus: ...

    @abstractmethod
    async def get_playlists(self) -> list[Playlist]: ...

    @abstractmethod
    async def play(self) -> bool: ...

    @abstractmethod
    async def pause(self) -> bool: ...

    @abstractmethod
    async def next_track(self) -> bool: ...

    @abstractmethod
    async def prev_track(self) -> bool: ...

    @abstractmethod
    async def set_volume(self, volume: float) -> bool: ...

    @abstractmethod
    async def volume_up(self) -> bool: ...

    @abstractmethod
    async def volume_down(self) -> bool: ...

    @abstractmethod
    async def toggle_shuffle(self) -> bool: ...

    @abstractmethod
    async def toggle_repeat(self) -> bool: ...

    # ── Search ──

    async def search_playlists(self, expr: str) -> PlaylistSearchResult:
        playlists = await self.get_playlists()
        return PlaylistSearchResult(expr, filter_by_name(playlists, expr))

    async def search_tracks(self, expr: str) -> TrackSearchResult:
        """Matching tracks of all playlists, in playlist order."""
        parts = to_search_expression_parts(expr)
        found = []
        for playlist in await self.get_playlists():
            for track in await playlist.get_tracks():
                if matches(track.name, parts):
                    found.append(track)
        return TrackSearchResult(expr, found)

    async def find_track(self, track_id, playlist_id=None) -> Track | None:
        track_id = str(track_id)
        for playlist in await self.get_playlists():
            if playlist_id is not None and str(playlist.id) != str(playlist_id):
                continue
            for track in await playlist.get_tracks():
                if str(track.id) == track_id:
                    return track
        return None
