"""Redirect URL parsing for fragment-delivered OAuth responses.

With ``response_mode=fragment`` the provider returns ``state``, ``code``
(or ``error``) in the part of the redirect URL after ``#``. This module
turns that URL into the parameter mapping the OAuth client's ``callback``
expects, and refuses to call the client at all when there is nothing to
hand over.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qsl, urlsplit

from sessionbridge.auth.base import CallbackResult, OAuthClient
from sessionbridge.exceptions import InvalidCallbackParamsError, MissingRedirectError


def parse_callback_url(redirect_url: Optional[str]) -> dict[str, str]:
    """Extract the OAuth response parameters from *redirect_url*'s fragment.

    The fragment is decoded as ``application/x-www-form-urlencoded``. Blank
    values are kept; for a repeated key the first value wins.

    Example::

        >>> parse_callback_url("https://x/cb#state=abc&code=123")
        {'state': 'abc', 'code': '123'}

    Raises:
        MissingRedirectError: If *redirect_url* is ``None`` or blank.
        InvalidCallbackParamsError: If the URL cannot be split or its
            fragment yields no parameters.
    """
    if not redirect_url or not redirect_url.strip():
        raise MissingRedirectError("No redirect URL present")

    try:
        fragment = urlsplit(redirect_url.strip()).fragment
    except ValueError as exc:
        raise InvalidCallbackParamsError(f"Malformed redirect URL: {exc}") from exc

    params: dict[str, str] = {}
    for key, value in parse_qsl(fragment, keep_blank_values=True):
        params.setdefault(key, value)

    if not params:
        raise InvalidCallbackParamsError("Redirect URL fragment holds no OAuth parameters")
    return params


async def handle_callback(client: OAuthClient, redirect_url: Optional[str]) -> CallbackResult:
    """Parse *redirect_url* and complete the flow with *client*.

    Raises:
        MissingRedirectError: See :func:`parse_callback_url`.
        InvalidCallbackParamsError: See :func:`parse_callback_url`.
        ProviderAuthError: If the client rejects the parameters.
    """
    params = parse_callback_url(redirect_url)
    return await client.callback(params)
