"""Popup UI controller.

The popup context lives only as long as its window, so it keeps no session
state of its own. On every activation it asks the background context for
the current status, and it re-renders from whatever arrives next:

- the direct reply to its own request (an ``authenticate`` reply or a
  ``session-status`` reply), or
- a ``session-status`` broadcast pushed by the background context.

Both kinds go through :func:`reduce_message`, which folds them into a
single :class:`~sessionbridge.models.SessionView` for the renderer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from sessionbridge.channel import Endpoint
from sessionbridge.models import SESSION_STATUS, Action, Profile, SessionView
from sessionbridge.output import (
    OutputFormat,
    error,
    get_output,
    info,
    print_document,
    print_table,
)

logger = logging.getLogger(__name__)


def reduce_message(message: Optional[Mapping[str, Any]]) -> SessionView:
    """Normalise an authenticate reply or a session-status message.

    A view is authenticated only when the message says so *and* carries a
    usable profile; the error string is passed through as-is.
    """
    if not message:
        return SessionView()

    if message.get("action") == SESSION_STATUS:
        authenticated = bool(message.get("authenticated"))
    else:
        authenticated = bool(message.get("success"))

    profile: Optional[Profile] = None
    raw_profile = message.get("profile")
    if authenticated and raw_profile:
        try:
            profile = Profile.model_validate(raw_profile)
        except ValidationError:
            logger.warning("Ignoring malformed profile in %s", message)

    return SessionView(
        authenticated=profile is not None,
        profile=profile,
        error=str(message.get("error") or ""),
    )


class Renderer(ABC):
    """Draws a :class:`SessionView`."""

    @abstractmethod
    def render(self, view: SessionView) -> None:
        ...


class ConsoleRenderer(Renderer):
    """Render the session through the global output manager.

    A login delivers the same outcome twice (pushed broadcast, then the
    direct reply); consecutive identical views are drawn once.
    """

    def __init__(self) -> None:
        self._last: Optional[SessionView] = None

    def render(self, view: SessionView) -> None:
        if view == self._last:
            return
        self._last = view

        if get_output().format == OutputFormat.JSON:
            print_document(view.model_dump(mode="json", by_alias=True))
            return

        if view.authenticated and view.profile is not None:
            profile = view.profile
            print_table(
                ["Handle", "Display name", "Avatar"],
                [[profile.handle, profile.display_name, profile.avatar or ""]],
                title="Signed in",
            )
            return

        if view.error:
            error(view.error)
        info("Not signed in.")


class PopupController:
    """Send requests from a popup context and render the answers.

    Registers a listener on *endpoint* for pushed ``session-status``
    messages. The listener never replies.

    Args:
        endpoint: The popup context's channel endpoint.
        renderer: Where views are drawn.
    """

    def __init__(self, endpoint: Endpoint, renderer: Renderer) -> None:
        self._endpoint = endpoint
        self._renderer = renderer
        self._view = SessionView()
        endpoint.add_listener(self.handle_message)

    @property
    def view(self) -> SessionView:
        """The most recently rendered view."""
        return self._view

    def handle_message(self, message: dict[str, Any]) -> None:
        if isinstance(message, Mapping) and message.get("action") == SESSION_STATUS:
            logger.debug("Popup received pushed status: %s", message)
            self.render(message)

    def render(self, message: Optional[Mapping[str, Any]]) -> SessionView:
        self._view = reduce_message(message)
        self._renderer.render(self._view)
        return self._view

    async def activate(self) -> SessionView:
        """Query the session status, as every newly opened popup does."""
        return await self._request(Action.GET_SESSION_STATUS)

    async def login(self) -> SessionView:
        return await self._request(Action.AUTHENTICATE)

    async def logout(self) -> SessionView:
        return await self._request(Action.LOGOUT)

    def close(self) -> None:
        self._endpoint.close()

    async def _request(self, action: Action) -> SessionView:
        logger.debug("Popup sending %s", action.value)
        reply = await self._endpoint.send_message({"action": action.value})
        if reply is None:
            logger.warning("No response to %s from the background context", action.value)
            return self._view
        return self.render(reply)
