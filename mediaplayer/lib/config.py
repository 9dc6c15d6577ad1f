# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Shared configuration loader.

Loads a single JSON config file.  Search order:
  1. the path handed to load_config() (the CLI's --config)
  2. $MEDIAPLAYER_CONFIG
  3. $MEDIAPLAYER_CONFIG_DIR/config.json  (default ~/.config/mediaplayer)
  4. config.json                          (CWD, for local dev)

Usage:
    from mediaplayer.lib.config import cfg

    players   = cfg("players", default=[])
    level     = cfg("logging", "level", default="INFO")
    token_dir = cfg("cache", "path", default=default_cache_path())
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

KNOWN_PLAYER_TYPES = ("vlc", "spotify", "napster", "deezer")


def config_dir() -> str:
    return os.environ.get(
        "MEDIAPLAYER_CONFIG_DIR",
        os.path.join(os.path.expanduser("~"), ".config", "mediaplayer"),
    )


def default_cache_path() -> str:
    return os.path.join(config_dir(), "tokens.json")


def _search_paths() -> list[str]:
    paths = []
    explicit = os.environ.get("MEDIAPLAYER_CONFIG")
    if explicit:
        paths.append(explicit)
    paths.append(os.path.join(config_dir(), "config.json"))
    paths.append("config.json")
    return paths


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    players = config.get("players")
    if players is None:
        logger.warning("Config %s: missing 'players' section, nothing to control", path)
        return
    if not isinstance(players, list):
        logger.warning("Config %s: 'players' should be a list", path)
        return
    for i, entry in enumerate(players):
        if not isinstance(entry, dict):
            logger.warning("Config %s: players[%d] is not an object", path, i)
            continue
        player_type = str(entry.get("type", "")).lower()
        if player_type not in KNOWN_PLAYER_TYPES:
            logger.warning("Config %s: players[%d] has unknown type '%s'", path, i, player_type)
        if not entry.get("name"):
            logger.warning("Config %s: players[%d] has no name", path, i)


def _read(path: str) -> dict | None:
    """Parse one candidate file. None when it is absent or unusable."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.error("Config %s: top level must be an object", path)
        return None
    logger.info("Config loaded from %s", path)
    _validate(data, path)
    return data


def load_config(path: str | None = None) -> dict:
    """Return the active config, reading it on first use.

    ``path`` (the CLI's --config) is tried before the search paths.
    """
    global _config
    if _config is None:
        candidates = ([path] if path else []) + _search_paths()
        _config = next((c for c in map(_read, candidates) if c is not None), None)
        if _config is None:
            logger.warning("No config.json found, using empty config")
            _config = {}
    return _config


def reload_config(path: str | None = None) -> dict:
    """Drop the cached config and read it again."""
    global _config
    _config = None
    return load_config(path)


def section(name: str) -> dict:
    """A config section as a dict; missing or malformed sections are empty."""
    val = load_config().get(name)
    return val if isinstance(val, dict) else {}


def cfg(name: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("players")                      -> config["players"]
    cfg("logging", "level")             -> config["logging"]["level"]
    cfg("cache", "path", default=None)  -> config["cache"]["path"] or None
    """
    if key is not None:
        return section(name).get(key, default)
    val = load_config().get(name)
    return default if val is None else val


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger from the ``logging`` section."""
    level = level or cfg("logging", "level", default="INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=cfg("logging", "format", default=LOG_FORMAT),
    )
