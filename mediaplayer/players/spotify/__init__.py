from .local import SpotifyClientError, SpotifyLocalClient
from .player import SpotifyPlayer

__all__ = ["SpotifyClientError", "SpotifyLocalClient", "SpotifyPlayer"]
