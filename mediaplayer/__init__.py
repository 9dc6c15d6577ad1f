"""
mediaplayer — remote control for local and streaming media players.

One asynchronous command surface (connect, status, playlists, tracks,
transport controls, volume, shuffle/repeat, search) over:

  - vlc      — VLC HTTP interface (XML)
  - spotify  — Web API + local companion app
  - napster  — REST API with "accepted" retry semantics
  - deezer   — REST API, OAuth code flow
"""

__version__ = "0.9.0"
