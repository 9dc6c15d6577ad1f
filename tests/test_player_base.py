"""Tests for the adapter lifecycle, notifications and search."""

import asyncio

import pytest

from mediaplayer.lib.errors import TransportError
from mediaplayer.lib.player_base import (
    ConnectionEvent, Lifecycle, PlayerBase, PlayerStatus, Playlist, State, Track,
)
from mediaplayer.lib.registry import PlayerConfig


class DummyPlayer(PlayerBase):
    """In-memory adapter: two playlists, scripted connect outcome."""

    type = "dummy"

    def __init__(self, connect_result=True, **kwargs):
        super().__init__(PlayerConfig(type="dummy", name="Dummy", id=7), **kwargs)
        self.connect_result = connect_result
        self.played = []
        self.play_gate: asyncio.Event | None = None
        self.library = {
            "1": ("Rock", ["Back in Black", "Highway to Hell", "Rock and Roll"]),
            "2": ("Mixed", ["Rock Lobster", "Blue Monday"]),
        }

    async def _connect(self):
        if isinstance(self.connect_result, Exception):
            raise self.connect_result
        return self.connect_result

    async def get_playlists(self):
        return [Playlist(id=pid, name=name, player=self, loader=self._tracks)
                for pid, (name, _) in self.library.items()]

    async def _tracks(self, playlist):
        names = self.library[playlist.id][1]
        return [Track(id=f"{playlist.id}-{i}", name=n, playlist=playlist, starter=self._start)
                for i, n in enumerate(names)]

    async def _start(self, track):
        if self.play_gate is not None:
            await self.play_gate.wait()
        self.played.append(track.id)
        return True

    async def get_status(self):
        return PlayerStatus(player=self)

    async def play(self): return True
    async def pause(self): return True
    async def next_track(self): return True
    async def prev_track(self): return True
    async def set_volume(self, volume): return True
    async def volume_up(self): return True
    async def volume_down(self): return True
    async def toggle_shuffle(self): return True
    async def toggle_repeat(self): return True


async def test_connect_emits_once_and_is_idempotent():
    player = DummyPlayer()
    events = []
    player.add_listener(lambda event, p: events.append(event))

    assert await player.connect() is True
    assert await player.connect() is False
    assert player.is_connected
    assert events == [ConnectionEvent.CONNECTED]
    await player.dispose()


async def test_disconnect_and_dispose_notify_on_change_only():
    player = DummyPlayer()
    events = []
    player.add_listener(lambda event, p: events.append(event))

    await player.connect()
    assert await player.disconnect() is True
    assert await player.disconnect() is False
    await player.dispose()
    await player.dispose()

    assert events == [ConnectionEvent.CONNECTED, ConnectionEvent.DISCONNECTED, ConnectionEvent.DISPOSED]
    assert player.lifecycle is Lifecycle.DISPOSED
    assert await player.connect() is False


async def test_failed_connect_returns_to_disconnected():
    player = DummyPlayer(connect_result=TransportError("refused"))
    events = []
    player.add_listener(lambda event, p: events.append(event))

    with pytest.raises(TransportError):
        await player.connect()
    assert player.lifecycle is Lifecycle.DISCONNECTED
    assert events == []

    player.connect_result = False
    assert await player.connect() is False
    assert player.lifecycle is Lifecycle.DISCONNECTED

    player.connect_result = True
    assert await player.connect() is True
    await player.dispose()


async def test_unsubscribe_and_failing_listener():
    player = DummyPlayer()
    seen = []

    def broken(event, p):
        raise RuntimeError("boom")

    player.add_listener(broken)
    unsubscribe = player.add_listener(lambda event, p: seen.append(event))
    await player.connect()
    unsubscribe()
    await player.disconnect()

    assert seen == [ConnectionEvent.CONNECTED]
    await player.dispose()


async def test_search_playlists_and_tracks():
    player = DummyPlayer()

    playlists = await player.search_playlists("ROCK")
    assert [p.name for p in playlists.playlists] == ["Rock"]

    result = await player.search_tracks("rock")
    assert result.expression == "rock"
    assert [t.name for t in result.tracks] == ["Rock and Roll", "Rock Lobster"]
    assert [t.playlist.name for t in result.tracks] == ["Rock", "Mixed"]

    everything = await player.search_tracks("")
    assert len(everything.tracks) == 5
    await player.dispose()


async def test_overlapping_track_play_shares_one_request():
    player = DummyPlayer()
    player.play_gate = asyncio.Event()
    track = await player.find_track("2-1")
    assert track.name == "Blue Monday"

    first = asyncio.create_task(track.play())
    second = asyncio.create_task(track.play())
    await asyncio.sleep(0)
    player.play_gate.set()

    assert await asyncio.gather(first, second) == [True, True]
    assert player.played == ["2-1"]

    assert await track.play() is True
    assert player.played == ["2-1", "2-1"]
    await player.dispose()


async def test_status_defaults():
    status = PlayerStatus()
    assert status.state is State.STOPPED
    assert status.volume is None and status.is_mute is None
    assert PlayerStatus(volume=0.0).is_mute is True
    assert PlayerStatus(volume=0.3).is_mute is False
    assert status.to_dict()["track"] is None


async def test_dispose_closes_owned_session_only(session):
    owned = DummyPlayer()
    _ = owned.session
    await owned.dispose()
    assert owned._http_session.closed

    shared = DummyPlayer(session=session)
    await shared.dispose()
    assert not session.closed
