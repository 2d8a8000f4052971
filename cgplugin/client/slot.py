"""Process-wide handle holding the one live PluginClient."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from cgplugin.client.channel import MessageChannel
from cgplugin.client.dispatcher import PluginClient
from cgplugin.client.rate_limit import RateLimiter, SlidingWindowRateLimiter
from cgplugin.config.schema import ClientConfig
from cgplugin.utils.exceptions import UninitializedError


class ClientSlot:
    """Create / replace / destroy lifecycle for a PluginClient.

    initialize() with the same (iframe_uid, sign_url, public_key) returns the
    live client untouched; anything else destroys it first. The rate window
    belongs to the slot, so replacing the client does not reset it.
    """

    def __init__(self, *, limiter: RateLimiter | None = None):
        self._client: PluginClient | None = None
        self._limiter = limiter
        self._lock = asyncio.Lock()

    @property
    def current(self) -> PluginClient | None:
        return self._client

    def _shared_limiter(self, settings: ClientConfig) -> RateLimiter:
        if self._limiter is None:
            self._limiter = SlidingWindowRateLimiter(
                max_requests=settings.max_requests_per_minute,
                window_seconds=settings.rate_window_seconds,
            )
        return self._limiter

    async def initialize(
        self,
        iframe_uid: str,
        sign_url: str,
        public_key: str,
        *,
        channel: MessageChannel,
        settings: ClientConfig | None = None,
        **kwargs: Any,
    ) -> PluginClient:
        async with self._lock:
            current = self._client
            if current is not None and current.matches(iframe_uid, sign_url, public_key):
                return current
            if current is not None:
                logger.info(f"Replacing plugin client for iframe {current.iframe_uid}")
                self._client = None
                current.destroy()
            settings = settings or ClientConfig()
            kwargs.setdefault("limiter", self._shared_limiter(settings))
            client = await PluginClient.create(
                iframe_uid,
                sign_url,
                public_key,
                channel,
                settings=settings,
                **kwargs,
            )
            self._client = client
            return client

    async def initialize_from_config(self, config: ClientConfig, *, channel: MessageChannel, **kwargs: Any) -> PluginClient:
        return await self.initialize(
            config.iframe_uid,
            config.sign_url,
            config.public_key,
            channel=channel,
            settings=config,
            **kwargs,
        )

    def get(self) -> PluginClient:
        if self._client is None:
            raise UninitializedError()
        return self._client

    def destroy(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            client.destroy()


default_slot = ClientSlot()


async def initialize(
    iframe_uid: str,
    sign_url: str,
    public_key: str,
    *,
    channel: MessageChannel,
    **kwargs: Any,
) -> PluginClient:
    """Initialize (or reuse) the process-wide client in default_slot."""
    return await default_slot.initialize(iframe_uid, sign_url, public_key, channel=channel, **kwargs)


def get_instance() -> PluginClient:
    return default_slot.get()
