"""Interactive web authentication flow for terminal hosts.

Fragment-delivered OAuth responses never reach a server, so a terminal host
cannot capture them with a local callback listener. :class:`BrowserPasteFlow`
instead opens the authorization URL in the user's browser and asks them to
paste the URL the browser ends up on after approving access.

Requires an interactive terminal (TTY).
"""

from __future__ import annotations

import logging
import sys
import threading
import webbrowser
from typing import Optional

import typer

from sessionbridge.auth.base import WebAuthFlow
from sessionbridge.exceptions import HostFlowCancelledError
from sessionbridge.output import info

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "The user did not approve access."


class BrowserPasteFlow(WebAuthFlow):
    """Open the browser and read the redirect URL back from the terminal.

    Args:
        open_browser: Whether to launch the system browser. When ``False``
            the URL is only printed.
    """

    def __init__(self, open_browser: bool = True) -> None:
        self._open_browser = open_browser

    async def launch(self, url: str, *, interactive: bool = True) -> Optional[str]:
        if not interactive or not sys.stdin.isatty():
            raise HostFlowCancelledError(
                "Interactive authentication requires a terminal (stdin must be a TTY)"
            )
        # Must run on the main thread: only it receives SIGINT.
        return self._run(url)

    def _run(self, url: str) -> str:
        info("Open this URL to sign in:")
        info(url)
        if self._open_browser:
            # Browser launchers can block; keep them off the prompt's path.
            threading.Thread(target=webbrowser.open, args=(url,), daemon=True).start()

        try:
            redirect_url = typer.prompt(
                "Paste the URL your browser was redirected to",
                default="",
                show_default=False,
            )
        except (typer.Abort, KeyboardInterrupt):
            logger.debug("Interactive flow aborted at the prompt")
            raise HostFlowCancelledError(CANCELLED_MESSAGE) from None

        redirect_url = redirect_url.strip()
        if not redirect_url:
            raise HostFlowCancelledError(CANCELLED_MESSAGE)
        return redirect_url
