"""Cross-frame message channel contract and an in-process implementation.

The channel stands in for window.postMessage / the "message" event: it
moves plain JSON-like dicts between the plugin frame and its parent and
reports the sender origin with every delivery.
"""

from __future__ import annotations

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Callable

from loguru import logger

WILDCARD_ORIGIN = "*"

Listener = Callable[[Any, str], None]


class MessageChannel(ABC):

    @property
    def parent_origin(self) -> str | None:
        """Origin of the embedding page when observable, else None."""
        return None

    @abstractmethod
    def post_message(self, message: dict[str, Any], target_origin: str) -> None:
        """Deliver one message to the peer frame if its origin matches target_origin."""
        raise NotImplementedError

    @abstractmethod
    def add_listener(self, listener: Listener) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_listener(self, listener: Listener) -> None:
        raise NotImplementedError


class LocalFrameChannel(MessageChannel):
    """One side of an in-process frame link (see create_channel_pair).

    Delivery is asynchronous (scheduled on the running loop) and copies the
    message, like structured cloning in the browser.
    """

    def __init__(self, origin: str, *, parent_origin: str | None = None):
        self.origin = origin
        self._parent_origin = parent_origin
        self._listeners: list[Listener] = []
        self._peer: LocalFrameChannel | None = None
        self.sent: list[dict[str, Any]] = []

    @property
    def parent_origin(self) -> str | None:
        return self._parent_origin

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def connect(self, peer: "LocalFrameChannel") -> None:
        self._peer = peer
        peer._peer = self

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def post_message(self, message: dict[str, Any], target_origin: str) -> None:
        peer = self._peer
        if peer is None:
            raise RuntimeError("channel is not connected")
        self.sent.append(message)
        if target_origin != WILDCARD_ORIGIN and target_origin != peer.origin:
            logger.debug(f"postMessage target {target_origin} does not match {peer.origin}, dropped")
            return
        data = copy.deepcopy(message)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            peer._deliver(data, self.origin)
            return
        loop.call_soon(peer._deliver, data, self.origin)

    def _deliver(self, data: Any, origin: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(data, origin)
            except Exception:
                logger.exception(f"Message listener failed on {self.origin}")


def create_channel_pair(
    plugin_origin: str = "https://plugin.local",
    host_origin: str = "https://host.local",
    *,
    expose_parent_origin: bool = True,
) -> tuple[LocalFrameChannel, LocalFrameChannel]:
    """Return (plugin_side, host_side) connected channels."""
    plugin_side = LocalFrameChannel(plugin_origin, parent_origin=host_origin if expose_parent_origin else None)
    host_side = LocalFrameChannel(host_origin)
    plugin_side.connect(host_side)
    return plugin_side, host_side
