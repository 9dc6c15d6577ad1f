"""
Spotify Web API authorization (Authorization Code flow with client secret).

Usage:
    url = build_auth_url(client_id, redirect_uri)
    # ... user completes auth flow, redirect delivers ?code= ...
    tokens = await exchange_code(session, code, client_id, client_secret, redirect_uri)
    tokens["access_token"], tokens["expires_in"]
"""

import aiohttp
from yarl import URL

from ...lib.errors import AuthorizationError, UnexpectedStatusError
from ...lib.rest import RestClient

ACCOUNTS_URL = "https://accounts.spotify.com"

SCOPES = (
    "user-library-read",
    "streaming",
    "playlist-read-collaborative",
    "playlist-read-private",
)


def build_auth_url(client_id, redirect_uri, scopes=SCOPES, accounts_url=ACCOUNTS_URL) -> URL:
    """Build the Spotify authorization URL. Always shows the consent dialog."""
    return URL(f"{accounts_url}/authorize/").with_query({
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "show_dialog": "true",
    })


async def exchange_code(session: aiohttp.ClientSession, code, client_id, client_secret,
                        redirect_uri, accounts_url=ACCOUNTS_URL) -> dict:
    """Exchange an authorization code for an access token.

    Returns dict with 'access_token', 'expires_in' and usually 'refresh_token'.
    """
    client = RestClient(f"{accounts_url}/api/token", session)
    client.set_auth(client_id, client_secret)
    client.set_form({
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
    })
    response = await client.post()
    if response.status in (400, 401):
        body = await response.get_string()
        raise AuthorizationError(f"Spotify rejected the authorization code: {body[:200]}")
    if response.status != 200:
        await response.release()
        raise UnexpectedStatusError(response.status, str(response.url))
    return await response.get_json()
