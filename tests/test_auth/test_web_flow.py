"""Tests for the browser-and-paste interactive flow."""

from __future__ import annotations

import threading
import webbrowser
from unittest.mock import MagicMock, patch

import pytest
import typer

from sessionbridge.auth.web_flow import CANCELLED_MESSAGE, BrowserPasteFlow
from sessionbridge.exceptions import HostFlowCancelledError

AUTH_URL = "https://auth.example.com/oauth/authorize?state=abc"


@pytest.fixture
def tty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.stdin", MagicMock(**{"isatty.return_value": True}))


class TestBrowserPasteFlow:
    @pytest.mark.asyncio
    async def test_returns_pasted_url(self, tty, quiet_output) -> None:
        with patch("typer.prompt", return_value="  https://app.example.com/cb#code=1  "):
            url = await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)
        assert url == "https://app.example.com/cb#code=1"

    @pytest.mark.asyncio
    async def test_opens_browser(self, tty, quiet_output) -> None:
        with patch("sessionbridge.auth.web_flow.threading") as threading_mod, patch(
            "typer.prompt", return_value="https://app.example.com/cb#code=1"
        ):
            await BrowserPasteFlow().launch(AUTH_URL)
        thread_cls = threading_mod.Thread
        thread_cls.assert_called_once_with(target=webbrowser.open, args=(AUTH_URL,), daemon=True)
        thread_cls.return_value.start.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_prints_url(
        self, tty, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        with patch("typer.prompt", return_value="https://app.example.com/cb#code=1"):
            await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)
        assert AUTH_URL in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_empty_answer_cancels(self, tty, quiet_output) -> None:
        with patch("typer.prompt", return_value="   "):
            with pytest.raises(HostFlowCancelledError, match=CANCELLED_MESSAGE):
                await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)

    @pytest.mark.asyncio
    async def test_abort_cancels(self, tty, quiet_output) -> None:
        with patch("typer.prompt", side_effect=typer.Abort()):
            with pytest.raises(HostFlowCancelledError, match=CANCELLED_MESSAGE):
                await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)

    @pytest.mark.asyncio
    async def test_ctrl_c_at_prompt_cancels(self, tty, quiet_output) -> None:
        with patch("click.termui.visible_prompt_func", side_effect=KeyboardInterrupt):
            with pytest.raises(HostFlowCancelledError, match=CANCELLED_MESSAGE):
                await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)

    @pytest.mark.asyncio
    async def test_keyboard_interrupt_cancels(self, tty, quiet_output) -> None:
        with patch("typer.prompt", side_effect=KeyboardInterrupt()):
            with pytest.raises(HostFlowCancelledError, match=CANCELLED_MESSAGE):
                await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)

    @pytest.mark.asyncio
    async def test_prompts_on_main_thread(self, tty, quiet_output) -> None:
        seen: list[threading.Thread] = []

        def answer(*args: object, **kwargs: object) -> str:
            seen.append(threading.current_thread())
            return "https://app.example.com/cb#code=1"

        with patch("typer.prompt", side_effect=answer):
            await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)
        assert seen == [threading.main_thread()]

    @pytest.mark.asyncio
    async def test_requires_terminal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", MagicMock(**{"isatty.return_value": False}))
        with pytest.raises(HostFlowCancelledError, match="TTY"):
            await BrowserPasteFlow(open_browser=False).launch(AUTH_URL)

    @pytest.mark.asyncio
    async def test_non_interactive_launch_is_refused(self, tty) -> None:
        with pytest.raises(HostFlowCancelledError):
            await BrowserPasteFlow(open_browser=False).launch(AUTH_URL, interactive=False)
