"""Abstract capability interfaces consumed by the session orchestrator.

The orchestrator never talks to the network, the disk, or the user's
browser directly. It drives three injected capabilities:

- :class:`OAuthClient` -- builds authorization URLs, completes the callback
  (state validation and token exchange), and resumes the persisted session.
- :class:`ProfileFetcher` -- loads the account profile for a session.
- :class:`WebAuthFlow` -- the host's "open an interactive web flow and
  return the URL the provider redirected to" capability.

A successful callback yields a :class:`CallbackResult` holding an
:class:`OAuthSession`, the credential-bearing handle the orchestrator keeps
as its active session.

Concrete implementations live in :mod:`sessionbridge.auth.oauth_client`,
:mod:`sessionbridge.auth.profile`, and :mod:`sessionbridge.auth.web_flow`;
tests substitute fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from sessionbridge.models import Profile


class OAuthSession(ABC):
    """An authenticated, token-backed session with the identity provider.

    Sessions stay inside the background context: they are never serialised
    into a message.
    """

    @property
    @abstractmethod
    def did(self) -> str:
        """The account identifier (DID) the session is bound to."""
        ...

    @abstractmethod
    def authorization_headers(self) -> dict[str, str]:
        """Return the HTTP headers that authenticate a request as this session."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """Invalidate the session with the provider and forget it locally."""
        ...


@dataclass
class CallbackResult:
    """Outcome of a completed authorization callback.

    Attributes:
        session: The freshly established session.
        state: The opaque state string that correlated the authorization
            request with this callback. Passed through untouched.
    """

    session: OAuthSession
    state: Optional[str] = None


class OAuthClient(ABC):
    """Authorization-code OAuth client capability."""

    @abstractmethod
    async def authorize(
        self,
        input: str,
        *,
        scope: str,
        response_mode: str = "fragment",
    ) -> str:
        """Start an authorization request and return the URL to open.

        Args:
            input: Handle, DID, or server URL the request is made for.
            scope: Space-separated OAuth scope.
            response_mode: How the provider returns the response parameters.

        Raises:
            ProviderAuthError: If the request cannot be prepared.
        """
        ...

    @abstractmethod
    async def callback(self, params: Mapping[str, str]) -> CallbackResult:
        """Complete the flow from the redirect's response parameters.

        Raises:
            ProviderAuthError: On provider errors, unknown state, or a
                failed token exchange.
        """
        ...

    @abstractmethod
    async def init(self) -> Optional[OAuthSession]:
        """Resume the persisted session, or return ``None`` when there is none."""
        ...

    async def aclose(self) -> None:
        """Release network resources. The default has none to release."""


class ProfileFetcher(ABC):
    """Authenticated profile lookup capability."""

    @abstractmethod
    async def get_profile(self, session: OAuthSession) -> Profile:
        """Fetch the profile of the account behind *session*.

        Raises:
            ProfileFetchError: If the profile cannot be retrieved.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. The default has none to release."""


class WebAuthFlow(ABC):
    """Host capability that runs an interactive web authentication flow."""

    @abstractmethod
    async def launch(self, url: str, *, interactive: bool = True) -> Optional[str]:
        """Open *url* and suspend until the provider redirects back.

        Returns:
            The full redirect URL, or ``None`` if the host produced none.

        Raises:
            HostFlowCancelledError: If the user abandons the flow.
        """
        ...
