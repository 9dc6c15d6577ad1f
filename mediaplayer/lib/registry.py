# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Player configurations and the registry that hands out their ids.

A config entry in config.json looks like:

    {"type": "vlc", "name": "Living room", "host": "10.0.0.5", "port": 8080,
     "password": "secret", "all_playlists": true}

Ids come from a counter owned by the registry, so they are unique for the
lifetime of the registry (one per process in practice) and are never
reused across configuration reloads.
"""

import dataclasses
import itertools
import logging
from dataclasses import dataclass

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

UNASSIGNED_ID = -1


@dataclass(frozen=True)
class PlayerConfig:
    type: str = ""
    name: str = ""
    description: str = ""
    id: int = UNASSIGNED_ID
    connect_on_startup: bool = True

    # Fields that must be non-empty before the adapter can connect
    required = ()

    @property
    def display_name(self) -> str:
        return self.name or f"{self.type or 'player'} #{self.id}"

    def validate(self) -> None:
        missing = [f for f in self.required if not getattr(self, f)]
        if missing:
            raise ConfigurationError(
                f"Player '{self.display_name}' ({self.type}) is missing: {', '.join(missing)}")


@dataclass(frozen=True)
class VLCPlayerConfig(PlayerConfig):
    host: str = "localhost"
    port: int = 8080
    password: str = ""
    all_playlists: bool = False

    @property
    def base_url(self) -> str:
        return f"http://{self.host or 'localhost'}:{self.port or 8080}"


@dataclass(frozen=True)
class SpotifyPlayerConfig(PlayerConfig):
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = ""
    local_url: str | None = None

    required = ("client_id", "client_secret", "redirect_url")


@dataclass(frozen=True)
class NapsterPlayerConfig(PlayerConfig):
    api_key: str = ""
    api_secret: str = ""
    user: str = ""
    password: str = ""

    required = ("api_key", "api_secret", "user", "password")


@dataclass(frozen=True)
class DeezerPlayerConfig(PlayerConfig):
    app_id: str = ""
    secret_key: str = ""
    redirect_url: str = ""

    required = ("app_id", "secret_key", "redirect_url")


CONFIG_TYPES: dict[str, type[PlayerConfig]] = {
    "vlc": VLCPlayerConfig,
    "spotify": SpotifyPlayerConfig,
    "napster": NapsterPlayerConfig,
    "deezer": DeezerPlayerConfig,
}


class PlayerRegistry:
    """Builds typed PlayerConfigs from raw entries and assigns their ids."""

    def __init__(self, first_id: int = 0):
        self._ids = itertools.count(first_id)
        self._configs: dict[int, PlayerConfig] = {}

    def register(self, entry: dict) -> PlayerConfig:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Player entry must be an object, got {type(entry).__name__}")
        player_type = str(entry.get("type", "")).strip().lower()
        config_cls = CONFIG_TYPES.get(player_type, PlayerConfig)
        known = {f.name for f in dataclasses.fields(config_cls)}

        values = {k: v for k, v in entry.items() if k in known}
        ignored = sorted(set(entry) - known)
        if ignored:
            logger.debug("Ignoring unknown keys for %s player: %s", player_type or "?", ", ".join(ignored))
        values["type"] = player_type
        values["id"] = next(self._ids)

        config = config_cls(**values)
        self._configs[config.id] = config
        logger.info("Registered player #%d '%s' (%s)", config.id, config.name, player_type or "untyped")
        return config

    def load(self, entries) -> list[PlayerConfig]:
        """Register a fresh list of entries, forgetting previously loaded ones."""
        self._configs.clear()
        return [self.register(entry) for entry in entries or []]

    def get(self, player_id: int) -> PlayerConfig | None:
        return self._configs.get(player_id)

    def find(self, key) -> PlayerConfig | None:
        """Look a config up by id or case-insensitive name."""
        if isinstance(key, int) or (isinstance(key, str) and key.isdigit()):
            return self._configs.get(int(key))
        wanted = str(key).strip().lower()
        for config in self._configs.values():
            if config.name.strip().lower() == wanted:
                return config
        return None

    def __iter__(self):
        return iter(list(self._configs.values()))

    def __len__(self):
        return len(self._configs)
