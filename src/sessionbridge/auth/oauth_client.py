"""Authorization-code OAuth client with PKCE.

This module provides :class:`PkceOAuthClient`, the default
:class:`~sessionbridge.auth.base.OAuthClient` implementation. It performs
the Authorization Code grant with PKCE (:rfc:`7636`) against the configured
authorization server:

1. :meth:`~PkceOAuthClient.authorize` records a pending request and builds
   the authorization URL (response delivered in the URL fragment).
2. :meth:`~PkceOAuthClient.callback` validates the returned ``state``,
   exchanges the code for tokens, and persists them.
3. :meth:`~PkceOAuthClient.init` resumes the persisted session, refreshing
   the access token when it has expired. A rejected refresh forgets the
   session; an unreachable token endpoint leaves it stored.

Tokens are sent as bearer tokens; DPoP proof generation is not performed.

Also exports :func:`generate_pkce_pair`.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from sessionbridge.auth.base import CallbackResult, OAuthClient, OAuthSession
from sessionbridge.auth.credential_store import (
    PendingAuthorization,
    SessionStore,
    StateStore,
    StoredSession,
)
from sessionbridge.exceptions import ProviderAuthError, ProviderUnreachableError
from sessionbridge.models import Settings

logger = logging.getLogger(__name__)


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


class TokenSession(OAuthSession):
    """A session backed by tokens held in the :class:`SessionStore`."""

    def __init__(self, stored: StoredSession, client: PkceOAuthClient) -> None:
        self._stored = stored
        self._client = client

    @property
    def did(self) -> str:
        return self._stored.sub

    def authorization_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._stored.access_token}"}

    async def sign_out(self) -> None:
        await self._client.revoke(self._stored)


class PkceOAuthClient(OAuthClient):
    """Authorization Code + PKCE client persisting one session.

    Args:
        settings: Static client configuration.
        store: Session storage; defaults to the ``default`` store.
        states: Pending-request storage.
        http: Shared :class:`httpx.AsyncClient`. When omitted the client
            creates and owns one.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: Optional[SessionStore] = None,
        states: Optional[StateStore] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._store = store or SessionStore()
        self._states = states or StateStore()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.timeout)

    async def authorize(
        self,
        input: str,
        *,
        scope: str,
        response_mode: str = "fragment",
    ) -> str:
        code_verifier, code_challenge = generate_pkce_pair()
        state = secrets.token_urlsafe(32)
        self._states.put(
            PendingAuthorization(
                state=state,
                code_verifier=code_verifier,
                redirect_uri=self._settings.redirect_uri,
            )
        )

        params: dict[str, str] = {
            "response_type": "code",
            "response_mode": response_mode,
            "client_id": self._settings.client_id,
            "redirect_uri": self._settings.redirect_uri,
            "scope": scope,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        # A server URL selects the authorization server; anything else
        # identifies the account and pre-fills the login form.
        if input and not input.startswith(("http://", "https://")):
            params["login_hint"] = input

        logger.debug("Prepared authorization request for %s", input)
        return f"{self._settings.authorization_endpoint}?{urlencode(params)}"

    async def callback(self, params: Mapping[str, str]) -> CallbackResult:
        if "error" in params:
            message = f"Authorization failed: {params['error']}"
            if params.get("error_description"):
                message += f" - {params['error_description']}"
            raise ProviderAuthError(message)

        state = params.get("state")
        if not state:
            raise ProviderAuthError("Callback is missing the 'state' parameter")
        pending = self._states.pop(state)
        if pending is None:
            raise ProviderAuthError("Unknown or expired authorization state")

        code = params.get("code")
        if not code:
            raise ProviderAuthError("Callback is missing the 'code' parameter")

        token_data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": pending.redirect_uri,
                "code_verifier": pending.code_verifier,
                "client_id": self._settings.client_id,
            }
        )
        stored = self._persist(token_data)
        logger.info("Established session for %s", stored.sub)
        return CallbackResult(session=TokenSession(stored, self), state=state)

    async def init(self) -> Optional[OAuthSession]:
        stored = self._store.load()
        if stored is None:
            return None

        if stored.is_expired():
            if not stored.refresh_token:
                logger.info("Stored session for %s expired", stored.sub)
                self._store.clear()
                return None
            try:
                stored = await self._refresh(stored, stored.refresh_token)
            except ProviderUnreachableError:
                raise
            except ProviderAuthError as exc:
                logger.warning("Session refresh failed: %s", exc)
                self._store.clear()
                return None

        return TokenSession(stored, self)

    async def revoke(self, stored: StoredSession) -> None:
        """Revoke *stored* at the provider, then forget it locally.

        Revocation failures are logged; the local session is cleared
        regardless so a sign-out always takes effect on this side.
        """
        token = stored.refresh_token or stored.access_token
        try:
            response = await self._http.post(
                self._settings.revocation_endpoint,
                data={"token": token, "client_id": self._settings.client_id},
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Token revocation failed: %s", exc)
        finally:
            self._store.clear()
        logger.info("Signed out %s", stored.sub)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _refresh(self, stored: StoredSession, refresh_token: str) -> StoredSession:
        token_data = await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._settings.client_id,
            }
        )
        logger.debug("Refreshed session for %s", stored.sub)
        return self._persist(token_data, previous=stored)

    async def _token_request(self, data: dict[str, str]) -> dict[str, Any]:
        """POST to the token endpoint and return the parsed JSON body.

        Raises:
            ProviderUnreachableError: On transport errors, 429 and 5xx
                responses.
            ProviderAuthError: When the grant is rejected or the response
                lacks ``access_token``.
        """
        try:
            response = await self._http.post(
                self._settings.token_endpoint,
                data=data,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token_data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = f"Token request failed with status {status}: {exc.response.text}"
            if status == 429 or status >= 500:
                raise ProviderUnreachableError(message) from exc
            raise ProviderAuthError(message) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnreachableError(f"Token request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderAuthError("Token response is not valid JSON") from exc

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise ProviderAuthError("Token response missing 'access_token' field")
        return token_data

    def _persist(
        self,
        token_data: dict[str, Any],
        previous: Optional[StoredSession] = None,
    ) -> StoredSession:
        sub = token_data.get("sub") or (previous.sub if previous else None)
        if not sub:
            raise ProviderAuthError("Token response missing 'sub' field")

        expires_at: Optional[datetime] = None
        expires_in = token_data.get("expires_in")
        if expires_in is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))

        refresh_token = token_data.get("refresh_token")
        if refresh_token is None and previous is not None:
            refresh_token = previous.refresh_token

        stored = StoredSession(
            sub=sub,
            access_token=token_data["access_token"],
            refresh_token=refresh_token,
            token_type=token_data.get("token_type", "Bearer"),
            scope=token_data.get("scope"),
            expires_at=expires_at,
        )
        self._store.save(stored)
        return stored
