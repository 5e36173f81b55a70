"""Capabilities the session orchestrator drives.

This package defines the capability interfaces and their default
implementations:

- :class:`OAuthClient`, :class:`OAuthSession`, :class:`ProfileFetcher`,
  :class:`WebAuthFlow` -- abstract interfaces (:mod:`sessionbridge.auth.base`).
- :class:`PkceOAuthClient` -- authorization-code + PKCE client persisting
  its session in a :class:`SessionStore`.
- :class:`XrpcProfileFetcher` -- ``app.bsky.actor.getProfile`` lookups.
- :class:`BrowserPasteFlow` -- browser plus pasted redirect URL.

Typical usage::

    from sessionbridge.auth import PkceOAuthClient

    client = PkceOAuthClient(settings)
    session = await client.init()
"""

from sessionbridge.auth.base import (
    CallbackResult,
    OAuthClient,
    OAuthSession,
    ProfileFetcher,
    WebAuthFlow,
)
from sessionbridge.auth.credential_store import SessionStore, StateStore, StoredSession
from sessionbridge.auth.oauth_client import PkceOAuthClient, generate_pkce_pair
from sessionbridge.auth.profile import XrpcProfileFetcher
from sessionbridge.auth.web_flow import BrowserPasteFlow

__all__ = [
    "BrowserPasteFlow",
    "CallbackResult",
    "OAuthClient",
    "OAuthSession",
    "PkceOAuthClient",
    "ProfileFetcher",
    "SessionStore",
    "StateStore",
    "StoredSession",
    "WebAuthFlow",
    "XrpcProfileFetcher",
    "generate_pkce_pair",
]
