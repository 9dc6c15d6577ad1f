# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""Error kinds raised by the REST client, the adapters and the controller."""


class MediaPlayerError(Exception):
    """Base class for every error raised by mediaplayer."""


class ConfigurationError(MediaPlayerError):
    """A player configuration is missing a required field or is unusable."""


class TransportError(MediaPlayerError):
    """Connection refused, DNS failure, timeout or a broken response stream."""


class UnexpectedStatusError(MediaPlayerError):
    """The backend answered with a status code the caller does not accept."""

    def __init__(self, status: int, url: str | None = None):
        self.status = status
        self.url = url
        msg = f"Unexpected status code: {status}"
        if url:
            msg += f" ({url})"
        super().__init__(msg)


class ParseError(MediaPlayerError):
    """A response body could not be decoded (XML, JSON or query string)."""


class AuthorizationError(MediaPlayerError):
    """No authorization code or access token could be obtained."""
