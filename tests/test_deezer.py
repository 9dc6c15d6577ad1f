"""Tests for the Deezer adapter."""

import pytest
from yarl import URL

from mediaplayer.lib.cache import CredentialCache, MemoryStore
from mediaplayer.lib.errors import AuthorizationError, ConfigurationError, ParseError
from mediaplayer.lib.player_base import State
from mediaplayer.lib.registry import DeezerPlayerConfig
from mediaplayer.players.deezer import DeezerPlayer, parse_token_response

from .conftest import Reply, json_reply


class FakeAuthorizer:
    def __init__(self, code="code-1"):
        self.code = code
        self.calls = []

    async def __call__(self, provider, authorize_url, redirect_url):
        self.calls.append((provider, authorize_url, redirect_url))
        return self.code


def make_config(**overrides):
    values = dict(type="deezer", name="Deezer", id=21, app_id="123", secret_key="shh",
                  redirect_url="http://localhost:8765/deezer")
    values.update(overrides)
    return DeezerPlayerConfig(**values)


@pytest.fixture
def authorizer():
    return FakeAuthorizer()


@pytest.fixture
def store():
    return MemoryStore()


def make_player(backend, session, store, authorizer, **overrides):
    cache = CredentialCache(store, DeezerPlayer.cache_namespace)
    return DeezerPlayer(make_config(**overrides), session, api_url=backend.url, connect_url=backend.url,
                        cache=cache, authorizer=authorizer)


@pytest.fixture
async def deezer(backend, session, store, authorizer):
    backend.on("GET", "/oauth/access_token.php", Reply(200, "access_token=dz-tok&expires=3600"))
    player = make_player(backend, session, store, authorizer)
    yield player
    await player.dispose()


async def test_connect_runs_code_flow(deezer, backend, authorizer):
    assert await deezer.connect() is True

    provider, authorize_url, redirect_url = authorizer.calls[0]
    assert provider == "Deezer"
    query = URL(authorize_url).query
    assert query["app_id"] == "123"
    assert query["redirect_uri"] == "http://localhost:8765/deezer"
    assert query["perms"] == "basic_access,email"
    assert redirect_url == "http://localhost:8765/deezer"

    exchange = backend.calls("GET", "/oauth/access_token.php")[0]
    assert exchange.query == {"app_id": "123", "secret": "shh", "code": "code-1"}
    token = deezer.cached_token()
    assert token.bearer_token == "dz-tok"
    assert token.authorization_code == "code-1"


async def test_cached_token_skips_authorization(deezer, backend, session, store, authorizer):
    await deezer.connect()
    again = make_player(backend, session, store, authorizer)
    assert await again.connect() is True
    assert len(authorizer.calls) == 1
    await again.dispose()


async def test_missing_code_is_an_authorization_error(backend, session, store):
    player = make_player(backend, session, store, FakeAuthorizer(code=None))
    with pytest.raises(AuthorizationError):
        await player.connect()
    assert not player.is_connected
    await player.dispose()


async def test_token_endpoint_without_token(deezer, backend):
    backend.on("GET", "/oauth/access_token.php", Reply(200, "wrong_code=1"))
    with pytest.raises(AuthorizationError):
        await deezer.connect()


async def test_missing_configuration(backend, session, store, authorizer):
    player = make_player(backend, session, store, authorizer, secret_key="")
    with pytest.raises(ConfigurationError):
        await player.connect()
    assert authorizer.calls == []
    await player.dispose()


def test_parse_token_response():
    assert parse_token_response("access_token=abc&expires=0") == ("abc", "0")
    with pytest.raises(ParseError):
        parse_token_response("wrong code")


async def test_playlists_and_tracks(deezer, backend):
    backend.on("GET", "/user/me/playlists", json_reply({"data": [
        {"id": 3, "title": "Loved Tracks"}, {"id": 1, "title": "chill"},
    ]}))
    backend.on("GET", "/playlist/1/tracks", json_reply({"data": [
        {"id": 77, "title": "Intro"},
    ]}))

    playlists = await deezer.get_playlists()

    assert [(p.id, p.name) for p in playlists] == [("1", "chill"), ("3", "Loved Tracks")]
    tracks = await playlists[0].get_tracks()
    assert [(t.id, t.name) for t in tracks] == [("77", "Intro")]
    assert backend.calls("GET", "/playlist/1/tracks")[0].query["access_token"] == "dz-tok"
    assert await tracks[0].play() is False


async def test_rejected_token_falls_back_to_empty_library(deezer, backend):
    backend.on("GET", "/user/me/playlists", json_reply(
        {"error": {"type": "OAuthException", "message": "Invalid OAuth access token.", "code": 300}}))
    assert await deezer.get_playlists() == []
    assert deezer.cached_token() is None


async def test_playback_is_not_supported(deezer):
    assert await deezer.play() is False
    assert await deezer.pause() is False
    assert await deezer.next_track() is False
    assert await deezer.set_volume(0.2) is False
    assert await deezer.toggle_repeat() is False
    status = await deezer.get_status()
    assert status.state is State.STOPPED
    assert status.volume is None
