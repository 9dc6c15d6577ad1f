"""
Command line control of the configured players.

    python -m mediaplayer status
    python -m mediaplayer --player "Living room" search-tracks daft punk
    python -m mediaplayer --config ./config.json volume 0.4

Prints JSON on stdout.  Tokens obtained while authorizing are kept in
cache.path (default $MEDIAPLAYER_CONFIG_DIR/tokens.json).
"""

import argparse
import asyncio
import json
import logging
import sys

import aiohttp

from .controller import MediaPlayerController
from .lib.cache import JsonFileStore
from .lib.config import cfg, default_cache_path, reload_config, setup_logging
from .lib.errors import MediaPlayerError
from .lib.player_base import PlayerBase, Playlist, Track
from .lib.registry import PlayerRegistry

log = logging.getLogger("mediaplayer")

SIMPLE_COMMANDS = {
    "play": "play",
    "pause": "pause",
    "next": "next_track",
    "prev": "prev_track",
    "volume-up": "volume_up",
    "volume-down": "volume_down",
    "shuffle": "toggle_shuffle",
    "repeat": "toggle_repeat",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mediaplayer", description="Control VLC and streaming players")
    parser.add_argument("--config", help="Config file (default: $MEDIAPLAYER_CONFIG_DIR/config.json)")
    parser.add_argument("--player", help="Player name or id (default: first configured)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List configured players")
    sub.add_parser("status", help="Show playback status")
    sub.add_parser("playlists", help="List playlists")
    tracks = sub.add_parser("tracks", help="List tracks of a playlist (all when omitted)")
    tracks.add_argument("playlist", nargs="?", help="Playlist id or name")
    for name in SIMPLE_COMMANDS:
        sub.add_parser(name)
    volume = sub.add_parser("volume", help="Set volume (0.0 - 1.0)")
    volume.add_argument("value", type=float)
    play_track = sub.add_parser("play-track", help="Play a track by id")
    play_track.add_argument("track")
    play_track.add_argument("playlist", nargs="?")
    for name in ("search-playlists", "search-tracks"):
        search = sub.add_parser(name)
        search.add_argument("expression", nargs="*")
    sub.add_parser("authorize", help="Authorize the player's streaming account")
    return parser


def _playlist_json(playlist: Playlist) -> dict:
    return {"id": playlist.id, "name": playlist.name}


def _track_json(track: Track) -> dict:
    return {
        "id": track.id,
        "name": track.name,
        "playlist": track.playlist.name if track.playlist else None,
    }


async def _tracks(player: PlayerBase, playlist_key: str | None) -> list[Track]:
    tracks = []
    for playlist in await player.get_playlists():
        if playlist_key and playlist_key not in (playlist.id, playlist.name):
            continue
        tracks.extend(await playlist.get_tracks())
    return tracks


async def run_command(controller: MediaPlayerController, player_id: int, args):
    connected = controller.get_player(player_id)
    player = connected.player
    command = args.command

    if command == "status":
        return (await player.get_status()).to_dict()
    if command == "playlists":
        return [_playlist_json(p) for p in await player.get_playlists()]
    if command == "tracks":
        return [_track_json(t) for t in await _tracks(player, args.playlist)]
    if command in SIMPLE_COMMANDS:
        return {"ok": await getattr(player, SIMPLE_COMMANDS[command])()}
    if command == "volume":
        return {"ok": await player.set_volume(args.value)}
    if command == "play-track":
        return {"ok": await controller.select_track(player_id, args.track, args.playlist)}
    if command == "search-playlists":
        results = await controller.search_playlists(" ".join(args.expression))
        return [_playlist_json(p) for r in results for p in r.playlists]
    if command == "search-tracks":
        results = await controller.search_tracks(" ".join(args.expression))
        return [_track_json(t) for r in results for t in r.tracks]
    if command == "authorize":
        return {"ok": await controller.authorize(player_id)}
    raise ValueError(f"Unknown command {command}")


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.config:
        reload_config(args.config)
    setup_logging(args.log_level)

    registry = PlayerRegistry()
    configs = registry.load(cfg("players", default=[]))
    if args.command == "list":
        json.dump([{"id": c.id, "name": c.name, "type": c.type, "description": c.description}
                   for c in configs], sys.stdout, indent=2)
        print()
        return 0

    config = registry.find(args.player) if args.player else (configs[0] if configs else None)
    if config is None:
        print(f"ERROR: no player {args.player or 'configured'}", file=sys.stderr)
        return 1

    log.debug("Using player #%d %s (%s)", config.id, config.display_name, config.type)
    store = JsonFileStore(cfg("cache", "path", default=default_cache_path()))
    async with aiohttp.ClientSession() as session:
        async with MediaPlayerController(registry, session=session, store=store) as controller:
            try:
                connected = await controller.connect(config)
                if connected is None:
                    print(f"ERROR: could not connect to {config.display_name}", file=sys.stderr)
                    return 1
                result = await run_command(controller, config.id, args)
            except MediaPlayerError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1

    json.dump(result, sys.stdout, indent=2)
    print()   # trailing newline
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
