"""
VLC player adapter (type "vlc").

Talks to VLC's HTTP interface (``vlc --extraintf http --http-password …``).

VLC HTTP API (default port 8080, Basic auth with an empty user, XML):
  GET /requests/playlist.xml                      : playlist tree (node/leaf)
  GET /requests/status.xml                        : state, volume, flags
  GET /requests/status.xml?command=pl_play        : play (``&id=N`` for a track)
  GET /requests/status.xml?command=pl_pause       : toggle pause
  GET /requests/status.xml?command=pl_next | pl_previous
  GET /requests/status.xml?command=volume&val=N   : 0..512, 256 is 100%
  GET /requests/status.xml?command=volume&val=+5  : relative
  GET /requests/status.xml?command=pl_random | pl_loop | pl_repeat  : toggles
"""

import logging
import math
from xml.etree import ElementTree

import aiohttp

from ..lib.errors import ParseError, UnexpectedStatusError
from ..lib.player_base import (
    PlayerBase, PlayerStatus, Playlist, RepeatMode, State, Track,
)
from ..lib.registry import VLCPlayerConfig

logger = logging.getLogger("mediaplayer.vlc")

VOLUME_SCALE = 256
VOLUME_STEP = 5

_STATES = {
    "playing": State.PLAYING,
    "paused": State.PAUSED,
}


def _parse_xml(text: str) -> ElementTree.Element:
    try:
        return ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise ParseError(f"Invalid XML from VLC: {e}") from e


def _xml_text(root: ElementTree.Element, tag: str) -> str | None:
    el = root.find(tag)
    if el is None or el.text is None:
        return None
    return el.text.strip()


def _xml_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in ("true", "1")


def parse_volume(raw: str | None) -> float | None:
    """VLC raw volume (256 == 100%) → 0.0..1.0. Negative values clamp to 0."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.debug("Unparsable VLC volume %r", raw)
        return None
    if math.isnan(value):
        return None
    return max(0.0, value) / VOLUME_SCALE


def parse_repeat(root: ElementTree.Element) -> RepeatMode | None:
    """loop=true → LOOP_ALL, repeat=true → REPEAT_CURRENT; later element wins."""
    mode = None
    for el in root:
        if el.tag not in ("loop", "repeat"):
            continue
        if _xml_bool(el.text):
            mode = RepeatMode.LOOP_ALL if el.tag == "loop" else RepeatMode.REPEAT_CURRENT
        elif mode is None:
            mode = RepeatMode.NONE
    return mode


class VLCPlayer(PlayerBase):
    """VLC media player controlled over its HTTP/XML interface."""

    type = "vlc"

    def __init__(self, config: VLCPlayerConfig, session: aiohttp.ClientSession | None = None):
        super().__init__(config, session)
        self.base_url = config.base_url

    # ── VLC HTTP helpers ──

    async def _vlc_get(self, path: str, **params) -> ElementTree.Element:
        """GET a VLC endpoint and parse the XML answer."""
        client = self.rest(f"{self.base_url}/requests/{path}")
        client.set_auth("", self.config.password)
        client.set_params(params)
        response = await client.get()
        if response.status != 200:
            await response.release()
            raise UnexpectedStatusError(response.status, str(response.url))
        return _parse_xml(await response.get_string())

    async def _command(self, command: str, **params) -> bool:
        await self._vlc_get("status.xml", command=command, **params)
        logger.debug("%s: %s %s", self.name, command, params or "")
        return True

    # ── Lifecycle ──

    async def _connect(self) -> bool:
        await self.get_playlists()
        return True

    # ── Playlists ──

    async def _playlist_nodes(self) -> list[ElementTree.Element]:
        root = await self._vlc_get("playlist.xml")
        return root.findall("node")

    async def get_playlists(self) -> list[Playlist]:
        nodes = await self._playlist_nodes()
        if not self.config.all_playlists:
            nodes = nodes[:1]
        return [
            Playlist(id=node.get("id", ""), name=node.get("name", ""), player=self,
                     loader=self._load_tracks)
            for node in nodes
        ]

    async def _load_tracks(self, playlist: Playlist) -> list[Track]:
        for node in await self._playlist_nodes():
            if node.get("id") == playlist.id:
                return [
                    Track(id=leaf.get("id", ""), name=leaf.get("name", ""), playlist=playlist,
                          starter=self._play_track)
                    for leaf in node.findall("leaf")
                ]
        return []

    async def _play_track(self, track: Track) -> bool:
        return await self._command("pl_play", id=track.id)

    # ── Status ──

    async def get_status(self) -> PlayerStatus:
        root = await self._vlc_get("status.xml")
        status = PlayerStatus(
            player=self,
            state=_STATES.get((_xml_text(root, "state") or "").lower(), State.STOPPED),
            volume=parse_volume(_xml_text(root, "volume")),
            is_shuffle=_xml_bool(_xml_text(root, "random")),
            repeat=parse_repeat(root),
        )
        current = _xml_text(root, "currentplid")
        if current and current != "-1":
            status.current_track = await self._find_in_all_playlists(current)
        return status

    async def _find_in_all_playlists(self, track_id: str) -> Track | None:
        """Resolve currentplid against every playlist, regardless of all_playlists."""
        for node in await self._playlist_nodes():
            for leaf in node.findall("leaf"):
                if leaf.get("id") == track_id:
                    playlist = Playlist(id=node.get("id", ""), name=node.get("name", ""),
                                        player=self, loader=self._load_tracks)
                    return Track(id=track_id, name=leaf.get("name", ""), playlist=playlist,
                                 starter=self._play_track)
        return None

    # ── Transport controls ──

    async def play(self) -> bool:
        return await self._command("pl_play")

    async def pause(self) -> bool:
        return await self._command("pl_pause")

    async def next_track(self) -> bool:
        return await self._command("pl_next")

    async def prev_track(self) -> bool:
        return await self._command("pl_previous")

    async def set_volume(self, volume: float) -> bool:
        if volume is None or math.isnan(volume):
            volume = 1.0
        return await self._command("volume", val=math.floor(max(0.0, volume) * VOLUME_SCALE))

    async def volume_up(self) -> bool:
        return await self._command("volume", val=f"+{VOLUME_STEP}")

    async def volume_down(self) -> bool:
        return await self._command("volume", val=f"-{VOLUME_STEP}")

    async def toggle_shuffle(self) -> bool:
        return await self._command("pl_random")

    async def toggle_repeat(self) -> bool:
        """None → loop all → repeat current → None."""
        status = await self.get_status()
        if status.repeat is RepeatMode.LOOP_ALL:
            await self._command("pl_loop")
            return await self._command("pl_repeat")
        if status.repeat is RepeatMode.REPEAT_CURRENT:
            return await self._command("pl_repeat")
        return await self._command("pl_loop")
