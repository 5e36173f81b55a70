"""Session orchestrator -- the background context's authentication logic.

:class:`SessionOrchestrator` owns the one OAuth client instance and the
active session, and implements the three operations the background context
answers:

- :meth:`~SessionOrchestrator.authenticate` -- full interactive OAuth flow.
- :meth:`~SessionOrchestrator.logout` -- sign out the persisted session.
- :meth:`~SessionOrchestrator.get_session_status` -- resume the persisted
  session and fetch a fresh profile.

Every operation returns a reply envelope and never raises: failures are
logged and folded into the reply, because the popup that asked is blocked
until an answer arrives. Each invocation runs exactly once, without retries,
moving ``idle -> pending -> resolved | rejected``.

See Also:
    :class:`sessionbridge.router.MessageRouter` -- maps request messages to
    these operations.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from sessionbridge.auth.base import OAuthClient, OAuthSession, ProfileFetcher, WebAuthFlow
from sessionbridge.callback import handle_callback
from sessionbridge.models import AuthenticateReply, SessionStatusReply, Settings

logger = logging.getLogger(__name__)


class OperationState(str, enum.Enum):
    """Lifecycle of a single operation invocation."""

    IDLE = "idle"
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


def _transition(operation: str, state: OperationState) -> None:
    logger.debug("%s: %s", operation, state.value)


class SessionOrchestrator:
    """Drive the OAuth handshake and answer session queries.

    Args:
        settings: Static configuration (handle resolver, scope).
        oauth_client: The process-wide OAuth client capability.
        profiles: Profile lookup capability.
        web_flow: Host capability running the interactive flow.

    Example::

        orchestrator = SessionOrchestrator(settings, client, profiles, flow)
        reply = await orchestrator.get_session_status()
        reply.to_message()  # {"action": "session-status", "authenticated": False}
    """

    def __init__(
        self,
        settings: Settings,
        oauth_client: OAuthClient,
        profiles: ProfileFetcher,
        web_flow: WebAuthFlow,
    ) -> None:
        self._settings = settings
        self._client = oauth_client
        self._profiles = profiles
        self._web_flow = web_flow
        self._session: Optional[OAuthSession] = None

    @property
    def active_session(self) -> Optional[OAuthSession]:
        """The session established by the last successful authenticate."""
        return self._session

    async def authenticate(self) -> AuthenticateReply:
        """Run the interactive OAuth flow and return the signed-in profile.

        The session is stored as soon as the callback yields one, replacing
        any previous session. If the profile fetch fails afterwards the
        session stays stored and the reply reports the failure.
        """
        _transition("authenticate", OperationState.PENDING)
        try:
            auth_url = await self._client.authorize(
                self._settings.handle_resolver,
                scope=self._settings.scope,
                response_mode="fragment",
            )
            redirect_url = await self._web_flow.launch(auth_url, interactive=True)
            result = await handle_callback(self._client, redirect_url)
            self._session = result.session
            profile = await self._profiles.get_profile(result.session)
        except Exception as exc:
            logger.error("OAuth error: %s", exc, exc_info=True)
            _transition("authenticate", OperationState.REJECTED)
            return AuthenticateReply(success=False, error=str(exc))

        _transition("authenticate", OperationState.RESOLVED)
        return AuthenticateReply(success=True, profile=profile)

    async def logout(self) -> SessionStatusReply:
        """Sign out whatever session is persisted. Idempotent."""
        _transition("logout", OperationState.PENDING)
        try:
            session = await self._client.init()
            if session is not None:
                await session.sign_out()
            else:
                logger.debug("logout: no persisted session")
        except Exception as exc:
            logger.error("Logout failed: %s", exc, exc_info=True)
            _transition("logout", OperationState.REJECTED)
            return SessionStatusReply(authenticated=False, error=str(exc))
        finally:
            self._session = None

        _transition("logout", OperationState.RESOLVED)
        return SessionStatusReply(authenticated=False)

    async def get_session_status(self) -> SessionStatusReply:
        """Report whether a session is persisted, with a freshly fetched profile."""
        _transition("get-session-status", OperationState.PENDING)
        try:
            session = await self._client.init()
            if session is None:
                logger.debug("No active session found")
                _transition("get-session-status", OperationState.RESOLVED)
                return SessionStatusReply(authenticated=False)
            profile = await self._profiles.get_profile(session)
        except Exception as exc:
            logger.error("Session status check failed: %s", exc, exc_info=True)
            _transition("get-session-status", OperationState.REJECTED)
            return SessionStatusReply(authenticated=False, error=str(exc))

        _transition("get-session-status", OperationState.RESOLVED)
        return SessionStatusReply(authenticated=True, profile=profile)
