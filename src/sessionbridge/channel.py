"""In-process message passing between execution contexts.

A :class:`MessageChannel` connects named :class:`Endpoint` objects, one per
context (the long-lived background, each short-lived popup). Contexts share
nothing but JSON: every message and every reply is serialised and decoded
again on its way across, so no live object ever leaks from one side to the
other.

Two delivery kinds travel over the same channel:

- :meth:`Endpoint.send_message` -- a request. Every listener of every
  *other* endpoint sees it; a listener that wants to answer returns an
  awaitable, and the first of those to finish supplies the reply. When no
  listener answers, the sender gets ``None``.
- :meth:`Endpoint.broadcast` -- a push. Delivered the same way, but replies
  are ignored.

Example::

    channel = MessageChannel()
    background = channel.connect("background")
    popup = channel.connect("popup")
    background.add_listener(router)
    reply = await popup.send_message({"action": "get-session-status"})
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], Optional[Awaitable[dict[str, Any]]]]


def _copy(message: Any) -> Any:
    """Round-trip *message* through JSON. Raises ``TypeError`` if it can't."""
    return json.loads(json.dumps(message))


def _discard_result(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Listener failed after the reply was settled: %s", exc)


class MessageChannel:
    """Registry of connected endpoints."""

    def __init__(self) -> None:
        self._endpoints: list[Endpoint] = []

    def connect(self, name: str) -> Endpoint:
        """Create and register an endpoint for a new context."""
        endpoint = Endpoint(self, name)
        self._endpoints.append(endpoint)
        return endpoint

    def disconnect(self, endpoint: Endpoint) -> None:
        if endpoint in self._endpoints:
            self._endpoints.remove(endpoint)

    def _listeners_except(self, sender: Endpoint) -> list[Listener]:
        listeners: list[Listener] = []
        for endpoint in self._endpoints:
            if endpoint is not sender:
                listeners.extend(endpoint.listeners)
        return listeners


class Endpoint:
    """One context's attachment to a :class:`MessageChannel`."""

    def __init__(self, channel: MessageChannel, name: str) -> None:
        self._channel = channel
        self._name = name
        self._listeners: list[Listener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def listeners(self) -> list[Listener]:
        return list(self._listeners)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def close(self) -> None:
        """Detach this context; it receives nothing afterwards."""
        self._listeners.clear()
        self._channel.disconnect(self)

    async def send_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Send a request and wait for the first reply.

        Raises:
            TypeError: If *message* is not JSON-serialisable.
            Exception: Whatever the answering listener raised.
        """
        payload = _copy(message)
        pending = self._deliver(payload)
        if not pending:
            logger.debug("%s: no receiver answered %s", self._name, payload)
            return None

        done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        winner = next(task for task in pending if task in done)
        for task in pending:
            if task is not winner:
                task.add_done_callback(_discard_result)
        return _copy(winner.result())

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Push *message* to every other context without waiting for replies."""
        payload = _copy(message)
        for task in self._deliver(payload):
            task.add_done_callback(_discard_result)

    def _deliver(self, payload: dict[str, Any]) -> list[asyncio.Future]:
        pending: list[asyncio.Future] = []
        for listener in self._channel._listeners_except(self):
            result = listener(_copy(payload))
            if result is not None:
                pending.append(asyncio.ensure_future(result))
        return pending
