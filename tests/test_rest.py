"""Tests for the REST client."""

import base64
import json

import pytest

from mediaplayer.lib.errors import ParseError, TransportError
from mediaplayer.lib.rest import RestClient

from .conftest import Reply, json_reply


def _basic(user, password):
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


async def test_params_headers_and_auth_are_sent(backend, session):
    """Query parameters skip None values and auth lands in one header."""
    backend.on("GET", "/items", json_reply({"ok": True}))
    client = RestClient(f"{backend.url}/items", session)
    client.set_param("q", "daft punk").set_param("skip", None).set_param("flag", True)
    client.set_header("X-Test", "1")
    client.set_auth("user", "pw")

    response = await client.get()

    assert response.status == 200
    assert await response.get_json() == {"ok": True}
    call = backend.calls("GET", "/items")[0]
    assert call.query == {"q": "daft punk", "flag": "true"}
    assert call.headers["X-Test"] == "1"
    assert call.headers["Authorization"] == _basic("user", "pw")


async def test_bearer_replaces_basic(backend, session):
    backend.on("GET", "/me", Reply(204))
    client = RestClient(f"{backend.url}/me", session)
    client.set_auth("user", "pw")
    client.set_bearer("tok")
    assert client.headers == {"Authorization": "Bearer tok"}

    await (await client.get()).release()
    assert backend.calls()[0].headers["Authorization"] == "Bearer tok"


async def test_set_auth_with_empty_parts_clears_header(session):
    client = RestClient("http://localhost/", session)
    client.set_bearer("tok")
    client.set_auth("", "")
    assert client.get_header("authorization") is None

    client.set_auth("", "secret")
    assert client.get_header("Authorization") == _basic("", "secret")


async def test_header_names_are_case_insensitive(session):
    client = RestClient("http://localhost/", session)
    client.set_header("content-type", "text/plain")
    client.set_header("Content-Type", "application/json")
    assert client.headers == {"Content-Type": "application/json"}
    client.set_header("CONTENT-TYPE", None)
    assert client.headers == {}


async def test_userinfo_in_url_becomes_basic_auth(backend, session):
    backend.on("GET", "/x", Reply(200, "ok"))
    url = backend.url.replace("http://", "http://alice:secret@") + "/x"
    client = RestClient(url, session)

    response = await client.get()

    assert await response.get_string() == "ok"
    assert backend.calls()[0].headers["Authorization"] == _basic("alice", "secret")
    assert response.url.user is None


async def test_json_body(backend, session):
    backend.on("POST", "/data", Reply(201, "created"))
    client = RestClient(f"{backend.url}/data", session)
    client.set_json({"a": [1, 2]})

    response = await client.post()

    assert response.status == 201
    call = backend.calls("POST", "/data")[0]
    assert json.loads(call.body) == {"a": [1, 2]}
    assert call.headers["Content-Type"].startswith("application/json")


async def test_form_body(backend, session):
    backend.on("POST", "/token", json_reply({}))
    client = RestClient(f"{backend.url}/token", session)
    client.set_form({"grant_type": "password", "username": "a b", "unused": None})

    await (await client.post()).get_body()

    call = backend.calls()[0]
    assert call.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert b"grant_type=password" in call.body
    assert b"unused" not in call.body


async def test_body_serialisation(backend, session):
    """bytes pass through, dicts become JSON, everything else is stringified."""
    backend.on("PUT", "/raw", Reply(200))
    client = RestClient(f"{backend.url}/raw", session)

    client.set_body(b"\x00\x01")
    await (await client.put()).release()
    client.set_body({"k": "v"})
    await (await client.put()).release()
    client.set_body(42)
    await (await client.put()).release()
    client.set_body_provider(lambda state: f"state={state}", "abc")
    await (await client.put()).release()

    bodies = [c.body for c in backend.calls("PUT", "/raw")]
    assert bodies == [b"\x00\x01", b'{"k": "v"}', b"42", b"state=abc"]


async def test_body_is_read_once(backend, session):
    backend.on("GET", "/once", Reply(200, "héllo"))
    response = await RestClient(f"{backend.url}/once", session).get(state="marker")

    first = await response.get_body()
    assert await response.get_body() is first
    assert await response.get_string() == "héllo"
    assert await response.get_string("latin-1") != "héllo"
    assert response.state == "marker"


async def test_invalid_json_raises_parse_error(backend, session):
    backend.on("GET", "/bad", Reply(200, "{nope"))
    response = await RestClient(f"{backend.url}/bad", session).get()
    with pytest.raises(ParseError):
        await response.get_json()


async def test_connection_refused_raises_transport_error(session):
    client = RestClient("http://127.0.0.1:1/", session, timeout=2)
    with pytest.raises(TransportError):
        await client.get()


async def test_request_without_session_closes_its_own(backend):
    backend.on("GET", "/solo", Reply(200, "alone"))
    response = await RestClient(f"{backend.url}/solo").get()
    session = response._owned_session
    assert session is not None
    assert await response.get_string() == "alone"
    assert session.closed


async def test_reset(session):
    client = RestClient("http://localhost/", session)
    client.set_param("a", 1).set_header("X", "y").set_body("z")
    client.reset()
    assert client.params == {} and client.headers == {}
    assert client._encode_body() is None
