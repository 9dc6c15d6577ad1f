"""
Player adapters.

The factory function ``create_player`` picks the adapter class for a
PlayerConfig's ``type``.

Supported types:
  - ``vlc``      – VLC HTTP interface (playlist/status XML)
  - ``spotify``  – Spotify desktop app helper + Web API library
  - ``napster``  – Napster REST API (password grant)
  - ``deezer``   – Deezer REST API (library only, OAuth code flow)
"""

import logging

import aiohttp

from ..lib.cache import CredentialCache, MemoryStore
from ..lib.errors import ConfigurationError
from ..lib.player_base import PlayerBase
from ..lib.registry import PlayerConfig
from .deezer import DeezerPlayer
from .napster import NapsterPlayer
from .spotify import SpotifyPlayer
from .streaming import Authorizer, StreamingPlayer
from .vlc import VLCPlayer

logger = logging.getLogger("mediaplayer.players")

__all__ = [
    "DeezerPlayer",
    "NapsterPlayer",
    "SpotifyPlayer",
    "StreamingPlayer",
    "VLCPlayer",
    "PLAYER_TYPES",
    "create_player",
]

PLAYER_TYPES: dict[str, type[PlayerBase]] = {
    "vlc": VLCPlayer,
    "spotify": SpotifyPlayer,
    "napster": NapsterPlayer,
    "deezer": DeezerPlayer,
}


def create_player(config: PlayerConfig, session: aiohttp.ClientSession | None = None, *,
                  store=None, authorizer: Authorizer | None = None) -> PlayerBase:
    """Create the right adapter for ``config.type``.

    store       – key/value store backing the credential cache (streaming
                  players only; in-memory when omitted)
    authorizer  – coroutine (provider, authorize_url, redirect_url) -> code,
                  defaults to the local redirect listener
    """
    player_cls = PLAYER_TYPES.get(config.type)
    if player_cls is None:
        raise ConfigurationError(f"Unsupported player type '{config.type}' for '{config.display_name}'")

    if issubclass(player_cls, StreamingPlayer):
        cache = CredentialCache(store if store is not None else MemoryStore(), player_cls.cache_namespace)
        player = player_cls(config, session, cache=cache, authorizer=authorizer)
    else:
        player = player_cls(config, session)
    logger.debug("Created %s for '%s'", player_cls.__name__, config.display_name)
    return player
