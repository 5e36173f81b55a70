"""Tests for redirect URL fragment parsing."""

from __future__ import annotations

import pytest

from sessionbridge.callback import handle_callback, parse_callback_url
from sessionbridge.exceptions import (
    AuthError,
    InvalidCallbackParamsError,
    MissingRedirectError,
    ProviderAuthError,
)


class TestParseCallbackUrl:
    def test_extracts_fragment_params(self) -> None:
        params = parse_callback_url("https://x/cb#state=abc&code=123")
        assert params == {"state": "abc", "code": "123"}

    def test_query_string_is_ignored(self) -> None:
        params = parse_callback_url("https://x/cb?code=wrong#state=abc&code=123")
        assert params == {"state": "abc", "code": "123"}

    def test_percent_encoded_values_are_decoded(self) -> None:
        params = parse_callback_url(
            "https://x/cb#error=access_denied&error_description=User%20said%20no"
        )
        assert params["error_description"] == "User said no"

    def test_first_value_of_repeated_key_wins(self) -> None:
        params = parse_callback_url("https://x/cb#state=one&state=two")
        assert params == {"state": "one"}

    def test_blank_values_are_kept(self) -> None:
        params = parse_callback_url("https://x/cb#state=&code=123")
        assert params == {"state": "", "code": "123"}

    def test_surrounding_whitespace_is_stripped(self) -> None:
        params = parse_callback_url("  https://x/cb#code=1\n")
        assert params == {"code": "1"}

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_absent_url_raises_missing_redirect(self, url: str | None) -> None:
        with pytest.raises(MissingRedirectError):
            parse_callback_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://x/cb",
            "https://x/cb#",
            "https://x/cb?state=abc&code=123",
            "https://x/cb#&&",
        ],
    )
    def test_empty_fragment_raises_invalid_params(self, url: str) -> None:
        with pytest.raises(InvalidCallbackParamsError):
            parse_callback_url(url)

    def test_unsplittable_url_raises_invalid_params(self) -> None:
        with pytest.raises(InvalidCallbackParamsError):
            parse_callback_url("https://[::1/cb#code=1")

    def test_errors_are_auth_errors(self) -> None:
        assert issubclass(MissingRedirectError, AuthError)
        assert issubclass(InvalidCallbackParamsError, AuthError)


class TestHandleCallback:
    @pytest.mark.asyncio
    async def test_params_passed_verbatim_to_client(self, oauth_client) -> None:
        result = await handle_callback(oauth_client, "https://x/cb#state=abc&code=123")

        assert oauth_client.callback_params == [{"state": "abc", "code": "123"}]
        assert result.state == "abc"
        assert result.session is oauth_client.persisted

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, "", "https://x/cb", "https://x/cb#"])
    async def test_client_never_called_for_bad_urls(self, oauth_client, url) -> None:
        with pytest.raises((MissingRedirectError, InvalidCallbackParamsError)):
            await handle_callback(oauth_client, url)
        assert oauth_client.callback_params == []

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self, oauth_client) -> None:
        oauth_client.callback_error = ProviderAuthError("invalid_grant")
        with pytest.raises(ProviderAuthError, match="invalid_grant"):
            await handle_callback(oauth_client, "https://x/cb#state=abc&code=123")
