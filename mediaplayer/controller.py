"""
MediaPlayerController — owns the connected players.

    controller = MediaPlayerController(store=JsonFileStore(default_cache_path()))
    await controller.load_configuration(cfg("players", default=[]))
    for result in await controller.search_tracks("daft punk"):
        ...
    await controller.dispose()

Configuration reloads always dispose every connected player before new
adapters are created.  Player ids come from the registry at load time and
are handed to the adapters through their configs.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

import aiohttp

from .lib.errors import MediaPlayerError
from .lib.player_base import (
    ConnectionEvent, PlayerBase, PlayerStatus, PlaylistSearchResult, TrackSearchResult,
)
from .lib.registry import PlayerConfig, PlayerRegistry
from .players import create_player
from .players.streaming import Authorizer

logger = logging.getLogger("mediaplayer.controller")

STATUS_POLL_INTERVAL = 1.0  # seconds


@dataclass(eq=False)
class ConnectedPlayer:
    config: PlayerConfig
    player: PlayerBase

    @property
    def id(self) -> int:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.display_name


def _status_key(status: PlayerStatus) -> tuple:
    track = status.current_track
    return (
        status.state,
        track.id if track else None,
        status.volume,
        status.is_shuffle,
        status.repeat,
    )


class MediaPlayerController:
    """Connects configured players and fans commands out to them."""

    def __init__(self, registry: PlayerRegistry | None = None, *,
                 session: aiohttp.ClientSession | None = None, store=None,
                 authorizer: Authorizer | None = None,
                 player_factory: Callable[..., PlayerBase] = create_player):
        self.registry = registry or PlayerRegistry()
        self.session = session
        self.store = store
        self.authorizer = authorizer
        self.player_factory = player_factory
        self._players: dict[int, ConnectedPlayer] = {}
        self._last_playlist_search: dict[int, str] = {}
        self._last_track_search: dict[int, str] = {}
        self._disposals: set[asyncio.Task] = set()
        self._monitors: dict[int, asyncio.Task] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.dispose()

    # ── Configuration ──

    async def load_configuration(self, entries) -> list[PlayerConfig]:
        """Replace all players with the given config entries."""
        await self.disconnect_all()
        configs = self.registry.load(entries)
        for config in configs:
            if not config.connect_on_startup:
                continue
            try:
                await self.connect(config)
            except MediaPlayerError as e:
                logger.error("Could not connect to '%s': %s", config.display_name, e)
        logger.info("Configuration loaded: %d players, %d connected",
                    len(configs), len(self._players))
        return configs

    # ── Connections ──

    @property
    def connected_players(self) -> list[ConnectedPlayer]:
        return [self._players[pid] for pid in sorted(self._players)]

    def get_player(self, player_id: int) -> ConnectedPlayer | None:
        return self._players.get(player_id)

    async def connect(self, config: PlayerConfig) -> ConnectedPlayer | None:
        """Connect one player. Returns the existing connection if there is one."""
        existing = self._players.get(config.id)
        if existing is not None:
            return existing

        player = self.player_factory(config, self.session, store=self.store,
                                     authorizer=self.authorizer)
        try:
            ok = await player.connect()
        except BaseException:
            await player.dispose()
            raise
        if not ok:
            await player.dispose()
            return None

        connected = ConnectedPlayer(config, player)
        self._players[config.id] = connected
        player.add_listener(self._on_connection_event)
        return connected

    def _on_connection_event(self, event: ConnectionEvent, player: PlayerBase) -> None:
        if event is ConnectionEvent.CONNECTED:
            return
        connected = self._players.get(player.id)
        if connected is not None and connected.player is player:
            logger.info("Player '%s' %s", player.name, event.value)
            del self._players[player.id]
            self._stop_monitor(player.id)
            if event is ConnectionEvent.DISCONNECTED:
                task = asyncio.create_task(player.dispose())
                self._disposals.add(task)
                task.add_done_callback(self._disposals.discard)

    async def disconnect(self, player_id: int) -> bool:
        connected = self._players.pop(player_id, None)
        if connected is None:
            return False
        self._stop_monitor(player_id)
        await connected.player.dispose()
        return True

    async def disconnect_all(self) -> None:
        for player_id in list(self._players):
            await self.disconnect(player_id)

    async def dispose(self) -> None:
        await self.disconnect_all()
        if self._disposals:
            await asyncio.gather(*self._disposals)
        self._last_playlist_search.clear()
        self._last_track_search.clear()

    # ── Authorization ──

    async def authorize(self, player_id: int) -> bool:
        """Run the interactive authorization of a player that needs one."""
        connected = self._players.get(player_id)
        if connected is None:
            return False
        authorize = getattr(connected.player, "authorize", None)
        if authorize is None:
            return False
        return await authorize()

    # ── Search ──

    def last_playlist_search_expression(self, player_id: int) -> str | None:
        return self._last_playlist_search.get(player_id)

    def last_track_search_expression(self, player_id: int) -> str | None:
        return self._last_track_search.get(player_id)

    async def search_playlists(self, expr: str) -> list[PlaylistSearchResult]:
        results = []
        for connected in self.connected_players:
            if expr:
                self._last_playlist_search[connected.id] = expr
            try:
                results.append(await connected.player.search_playlists(expr))
            except MediaPlayerError as e:
                logger.warning("Playlist search on '%s' failed: %s", connected.name, e)
        return results

    async def search_tracks(self, expr: str) -> list[TrackSearchResult]:
        results = []
        for connected in self.connected_players:
            if expr:
                self._last_track_search[connected.id] = expr
            try:
                results.append(await connected.player.search_tracks(expr))
            except MediaPlayerError as e:
                logger.warning("Track search on '%s' failed: %s", connected.name, e)
        return results

    async def select_track(self, player_id: int, track_id, playlist_id=None) -> bool:
        connected = self._players.get(player_id)
        if connected is None:
            return False
        track = await connected.player.find_track(track_id, playlist_id)
        if track is None:
            logger.warning("Track %s not found on '%s'", track_id, connected.name)
            return False
        return await track.play()

    # ── Status monitoring ──

    def watch_status(self, player_id: int, callback: Callable[[PlayerStatus], None],
                     interval: float = STATUS_POLL_INTERVAL) -> asyncio.Task | None:
        """Poll a player's status and call ``callback`` whenever it changes."""
        connected = self._players.get(player_id)
        if connected is None:
            return None
        self._stop_monitor(player_id)
        task = asyncio.create_task(self._monitor(connected.player, callback, interval))
        self._monitors[player_id] = task
        return task

    def _stop_monitor(self, player_id: int) -> None:
        task = self._monitors.pop(player_id, None)
        if task is not None and not task.done():
            task.cancel()

    async def _monitor(self, player: PlayerBase, callback, interval: float) -> None:
        logger.info("Watching status of '%s'", player.name)
        last = None
        while player.is_connected:
            try:
                status = await player.get_status()
            except MediaPlayerError as e:
                logger.debug("Status poll on '%s' failed: %s", player.name, e)
            else:
                key = _status_key(status)
                if key != last:
                    last = key
                    try:
                        callback(status)
                    except Exception:
                        logger.exception("Status callback failed for '%s'", player.name)
            await asyncio.sleep(interval)
