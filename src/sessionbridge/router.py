"""Message router -- dispatches inbound requests to the orchestrator.

:class:`MessageRouter` is registered as a listener on the background
context's :class:`~sessionbridge.channel.Endpoint`. For a recognised
``action`` it returns an :class:`asyncio.Future` that resolves to exactly
one JSON-compatible reply; for anything else it returns ``None`` so other
listeners in the same context may answer instead.

Dispatch table:

======================  ==========================================
action                  operation
======================  ==========================================
``authenticate``        :meth:`SessionOrchestrator.authenticate`
``logout``              :meth:`SessionOrchestrator.logout`
``get-session-status``  :meth:`SessionOrchestrator.get_session_status`
======================  ==========================================
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional, Union

from sessionbridge.models import Action, AuthenticateReply, SessionStatusReply
from sessionbridge.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)

Reply = Union[AuthenticateReply, SessionStatusReply]
Broadcast = Callable[[dict[str, Any]], Awaitable[None]]


def failure_reply(action: Action, exc: BaseException) -> Reply:
    """Build the reply an *action* gets when its operation blew up."""
    if action is Action.AUTHENTICATE:
        return AuthenticateReply(success=False, error=str(exc))
    return SessionStatusReply(authenticated=False, error=str(exc))


class MessageRouter:
    """Route request messages to :class:`SessionOrchestrator` operations.

    Args:
        orchestrator: The background context's orchestrator.
        broadcast: Optional coroutine function used to push a
            ``session-status`` message to every popup once an
            ``authenticate`` request settles.
    """

    def __init__(
        self,
        orchestrator: SessionOrchestrator,
        broadcast: Optional[Broadcast] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._broadcast = broadcast
        self._handlers: dict[Action, Callable[[], Awaitable[Reply]]] = {
            Action.AUTHENTICATE: self._authenticate,
            Action.LOGOUT: orchestrator.logout,
            Action.GET_SESSION_STATUS: orchestrator.get_session_status,
        }

    def __call__(self, message: Any) -> Optional[asyncio.Future[dict[str, Any]]]:
        """Listener entry point. Must be called from within the event loop."""
        action = self.match(message)
        if action is None:
            return None
        logger.debug("Background received %s request", action.value)
        return asyncio.ensure_future(self._answer(action))

    @staticmethod
    def match(message: Any) -> Optional[Action]:
        """Return the :class:`Action` a message asks for, or ``None``."""
        if not isinstance(message, Mapping):
            return None
        try:
            return Action(message.get("action"))
        except (ValueError, TypeError):
            return None

    async def _answer(self, action: Action) -> dict[str, Any]:
        try:
            reply = await self._handlers[action]()
        except Exception as exc:
            logger.error("Unhandled error in %s: %s", action.value, exc, exc_info=True)
            reply = failure_reply(action, exc)
        return reply.to_message()

    async def _authenticate(self) -> AuthenticateReply:
        reply = await self._orchestrator.authenticate()
        if self._broadcast is not None:
            status = SessionStatusReply(
                authenticated=reply.success and reply.profile is not None,
                profile=reply.profile,
                error=reply.error,
            )
            try:
                await self._broadcast(status.to_message())
            except Exception:
                logger.warning("Session status broadcast failed", exc_info=True)
        return reply
