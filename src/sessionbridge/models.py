"""Canonical Pydantic models shared across all sessionbridge modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration** -- :class:`Settings` (static, frozen after startup) and
:class:`ClientMetadata` (the OAuth client metadata document derived from it).

**Domain values** -- :class:`Profile`, the account profile fetched fresh on
every authenticated query, and :class:`SessionView`, the popup's normalised
render state.

**Message envelopes** -- :class:`Action` (request tags),
:class:`AuthenticateReply` and :class:`SessionStatusReply`. Envelopes cross
the context boundary as plain JSON-compatible dicts produced by
:meth:`to_message`, using camelCase aliases and omitting unset fields.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SCOPE = "atproto transition:generic"
DEFAULT_AUTHORIZATION_SERVER = "https://bsky.social"
SESSION_STATUS = "session-status"
"""Tag carried by status replies and by pushed status broadcasts."""


# --- Configuration ---


class ClientMetadata(BaseModel):
    """OAuth client metadata document published at ``client_id``.

    Describes a public native client that uses the authorization-code grant
    with refresh tokens and no client authentication at the token endpoint.
    """

    client_id: str
    client_name: str
    client_uri: Optional[str] = None
    redirect_uris: list[str]
    grant_types: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    token_endpoint_auth_method: str = "none"
    application_type: str = "native"
    scope: str = DEFAULT_SCOPE
    dpop_bound_access_tokens: bool = True


class Settings(BaseModel):
    """Static configuration read once at startup.

    Resolved by :func:`~sessionbridge.config.resolve_settings` from the
    environment and the config file, then frozen: nothing changes it at
    runtime.

    Example::

        Settings(
            client_id="https://app.example.com/client-metadata.json",
            redirect_uri="https://app.example.com/callback",
            handle_resolver="https://bsky.social",
        )
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(description="OAuth client id (the client metadata URL)")
    redirect_uri: str = Field(description="Redirect URI registered for the client")
    handle_resolver: str = Field(
        description="Handle or server URL the authorization request is made for"
    )
    server_url: Optional[str] = Field(
        default=None, description="Public URL of the client application"
    )
    scope: str = Field(default=DEFAULT_SCOPE, description="Requested OAuth scope")
    client_name: str = Field(default="OAuth Example")
    authorization_server: str = Field(
        default=DEFAULT_AUTHORIZATION_SERVER,
        description="Base URL of the OAuth authorization server",
    )
    api_url: str = Field(
        default=DEFAULT_AUTHORIZATION_SERVER,
        description="Base URL of the XRPC service used for profile lookups",
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.authorization_server.rstrip('/')}/oauth/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.authorization_server.rstrip('/')}/oauth/token"

    @property
    def revocation_endpoint(self) -> str:
        return f"{self.authorization_server.rstrip('/')}/oauth/revoke"

    def client_metadata(self) -> ClientMetadata:
        """Build the client metadata document for these settings."""
        return ClientMetadata(
            client_id=self.client_id,
            client_name=self.client_name,
            client_uri=self.server_url,
            redirect_uris=[self.redirect_uri],
            scope=self.scope,
        )


# --- Domain values ---


class Profile(BaseModel):
    """Public profile of the authenticated account.

    Never cached: every authenticated reply carries a freshly fetched one.
    Unknown fields from the provider's response are dropped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    handle: str
    display_name: str = Field(default="", alias="displayName")
    avatar: Optional[str] = None


class SessionView(BaseModel):
    """What the popup renders, whatever kind of message it came from."""

    authenticated: bool = False
    profile: Optional[Profile] = None
    error: str = ""


# --- Message envelopes ---


class Action(str, enum.Enum):
    """Request tags understood by the background context."""

    AUTHENTICATE = "authenticate"
    LOGOUT = "logout"
    GET_SESSION_STATUS = "get-session-status"


class _Envelope(BaseModel):
    def to_message(self) -> dict[str, Any]:
        """Return the JSON-compatible wire form of this envelope."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthenticateReply(_Envelope):
    """Reply to an ``authenticate`` request."""

    success: bool
    profile: Optional[Profile] = None
    error: Optional[str] = None


class SessionStatusReply(_Envelope):
    """Reply to ``logout``/``get-session-status`` and pushed status broadcast."""

    action: Literal["session-status"] = SESSION_STATUS
    authenticated: bool
    profile: Optional[Profile] = None
    error: Optional[str] = None
