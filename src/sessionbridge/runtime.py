"""Startup wiring for the background and popup contexts.

:func:`build_runtime` assembles one process worth of contexts:

1. a :class:`~sessionbridge.channel.MessageChannel`;
2. the background endpoint, with a :class:`SessionOrchestrator` built once
   from the static settings and a :class:`MessageRouter` listening on it;
3. a popup endpoint with its :class:`PopupController`.

Capabilities default to the concrete implementations in
:mod:`sessionbridge.auth`; pass fakes to exercise the protocol without a
network or a browser.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from sessionbridge.auth.base import OAuthClient, ProfileFetcher, WebAuthFlow
from sessionbridge.auth.oauth_client import PkceOAuthClient
from sessionbridge.auth.profile import XrpcProfileFetcher
from sessionbridge.auth.web_flow import BrowserPasteFlow
from sessionbridge.channel import Endpoint, MessageChannel
from sessionbridge.models import Settings
from sessionbridge.orchestrator import SessionOrchestrator
from sessionbridge.popup import ConsoleRenderer, PopupController, Renderer
from sessionbridge.router import MessageRouter

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Handles to the wired-up contexts."""

    channel: MessageChannel
    background: Endpoint
    orchestrator: SessionOrchestrator
    router: MessageRouter
    popup: PopupController
    http: Optional[httpx.AsyncClient] = None

    def open_popup(self, renderer: Optional[Renderer] = None) -> PopupController:
        """Connect a further popup context to the same background."""
        return PopupController(self.channel.connect("popup"), renderer or ConsoleRenderer())

    async def aclose(self) -> None:
        self.popup.close()
        self.background.close()
        if self.http is not None:
            await self.http.aclose()


def build_runtime(
    settings: Settings,
    *,
    oauth_client: Optional[OAuthClient] = None,
    profiles: Optional[ProfileFetcher] = None,
    web_flow: Optional[WebAuthFlow] = None,
    renderer: Optional[Renderer] = None,
) -> Runtime:
    """Create the background context and one popup context.

    Must be called from within a running event loop, since the default
    capabilities share one :class:`httpx.AsyncClient`.
    """
    http: Optional[httpx.AsyncClient] = None
    if oauth_client is None or profiles is None:
        http = httpx.AsyncClient(timeout=settings.timeout, follow_redirects=True)
    if oauth_client is None:
        oauth_client = PkceOAuthClient(settings, http=http)
    if profiles is None:
        profiles = XrpcProfileFetcher(settings, http=http)

    channel = MessageChannel()
    background = channel.connect("background")
    orchestrator = SessionOrchestrator(
        settings,
        oauth_client,
        profiles,
        web_flow or BrowserPasteFlow(),
    )
    router = MessageRouter(orchestrator, broadcast=background.broadcast)
    background.add_listener(router)
    logger.debug("Background context ready for client %s", settings.client_id)

    popup = PopupController(channel.connect("popup"), renderer or ConsoleRenderer())
    return Runtime(
        channel=channel,
        background=background,
        orchestrator=orchestrator,
        router=router,
        popup=popup,
        http=http,
    )
