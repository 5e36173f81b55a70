"""Profile lookup over XRPC.

:class:`XrpcProfileFetcher` implements
:class:`~sessionbridge.auth.base.ProfileFetcher` by calling
``app.bsky.actor.getProfile`` for the session's DID with the session's
authorization headers. Nothing is cached: each call is a network round
trip.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from sessionbridge.auth.base import OAuthSession, ProfileFetcher
from sessionbridge.exceptions import ProfileFetchError
from sessionbridge.models import Profile, Settings

GET_PROFILE = "app.bsky.actor.getProfile"


class XrpcProfileFetcher(ProfileFetcher):
    """Fetch profiles from the configured XRPC service.

    Args:
        settings: Provides ``api_url`` and ``timeout``.
        http: Shared :class:`httpx.AsyncClient`; created and owned when
            omitted.
    """

    def __init__(
        self,
        settings: Settings,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = f"{settings.api_url.rstrip('/')}/xrpc/{GET_PROFILE}"
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.timeout)

    async def get_profile(self, session: OAuthSession) -> Profile:
        try:
            response = await self._http.get(
                self._url,
                params={"actor": session.did},
                headers={"Accept": "application/json", **session.authorization_headers()},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProfileFetchError(
                f"Profile request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProfileFetchError(f"Profile request failed: {exc}") from exc
        except ValueError as exc:
            raise ProfileFetchError("Profile response is not valid JSON") from exc

        try:
            return Profile.model_validate(data)
        except ValidationError as exc:
            raise ProfileFetchError(f"Unexpected profile response: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
