"""Session commands -- sign in, sign out, and show the session.

Each command plays the part of a freshly opened popup: it builds the
background and popup contexts for this process, sends one request over the
message channel, and renders the reply.

Typical workflow::

    sessionbridge login    # interactive OAuth flow in the browser
    sessionbridge status   # who is signed in?
    sessionbridge logout
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import typer

from sessionbridge.exceptions import ConfigError
from sessionbridge.exit_codes import EXIT_AUTH_FAILURE
from sessionbridge.models import SessionView
from sessionbridge.output import error, success, suggest
from sessionbridge.popup import PopupController
from sessionbridge.runtime import build_runtime


def _run_popup(request: Callable[[PopupController], Awaitable[SessionView]]) -> SessionView:
    """Resolve settings, wire up the contexts, and run one popup request."""
    from sessionbridge.config import resolve_settings

    try:
        settings = resolve_settings()
    except ConfigError as exc:
        error(str(exc))
        suggest("Configure the client: sessionbridge config set client_id <url>")
        raise typer.Exit(code=exc.exit_code) from None

    async def _session() -> SessionView:
        runtime = build_runtime(settings)
        try:
            return await request(runtime.popup)
        finally:
            await runtime.aclose()

    return asyncio.run(_session())


async def _activate_then_login(popup: PopupController) -> SessionView:
    await popup.activate()
    return await popup.login()


def login_command() -> None:
    """Sign in through the identity provider's authorization page.

    Opens the authorization URL in the browser, then asks for the URL the
    browser was redirected to after approving access.

    Raises:
        typer.Exit: With code 3 if the flow did not produce a session.

    Example::

        sessionbridge login
    """
    view = _run_popup(_activate_then_login)
    if not view.authenticated or view.profile is None:
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    success(f"Signed in as @{view.profile.handle}")


def logout_command() -> None:
    """Sign out and forget the stored session. Safe to run when signed out."""
    view = _run_popup(lambda popup: popup.logout())
    if not view.error:
        success("Signed out.")


def status_command() -> None:
    """Show the signed-in account, fetching its profile fresh.

    Example::

        sessionbridge status
        sessionbridge --json status
    """
    view = _run_popup(lambda popup: popup.activate())
    if not view.authenticated:
        suggest("Sign in: sessionbridge login")
