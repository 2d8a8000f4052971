"""Pytest fixtures: key material, an in-process host page and signing endpoint."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
import pytest

from cgplugin.client.channel import LocalFrameChannel, create_channel_pair
from cgplugin.client.dispatcher import PluginClient
from cgplugin.client.sign_client import SigningEndpointClient
from cgplugin.config.schema import ClientConfig
from cgplugin.host.signer import HostSigner
from cgplugin.identity.keys import generate_key_pair
from cgplugin.protocol.models import SignedRequest

IFRAME_UID = "iframe-1"
SIGN_URL = "https://plugin.example/api/sign"
PLUGIN_ID = "p1"
USER_ID = "u1"


class FakeHostPage:
    """Embedding page stand-in: answers plugin requests on the host-side channel."""

    def __init__(self, channel: LocalFrameChannel, signer: HostSigner):
        self.channel = channel
        self.signer = signer
        self.response_signer = signer
        self.sign_responses = True
        self.silent: set[str] = set()
        self.received: list[dict[str, Any]] = []
        self.receive_times: list[float] = []
        self.responses: dict[str, Any] = {
            "init": {"pluginId": PLUGIN_ID, "userId": USER_ID, "assignableRoleIds": ["r1", "r2"]},
            "navigate": {"ok": True},
            "requestPermission": {"ok": True},
            "userInfo": {"id": "u1", "name": "Ann", "roles": []},
            "communityInfo": {
                "id": "c1",
                "title": "Community",
                "roles": [
                    {
                        "id": "r1",
                        "title": "Member",
                        "type": "CUSTOM_MANUAL_ASSIGN",
                        "permissions": ["WEBRTC_CREATE"],
                        "assignmentRules": {"type": "free"},
                    }
                ],
            },
            "userFriends": {"friends": [{"id": "u2", "name": "Bob"}]},
            "giveRole": {"success": True},
        }
        channel.add_listener(self.on_message)

    def on_message(self, data: Any, origin: str) -> None:
        body = json.loads(data["request"])
        self.received.append(body)
        self.receive_times.append(asyncio.get_running_loop().time())
        operation = body["data"]["type"]
        if operation in self.silent:
            return
        self.reply(body["requestId"], self.responses[operation])

    def requests_of(self, operation: str) -> list[dict[str, Any]]:
        return [body for body in self.received if body["data"]["type"] == operation]

    def reply(self, request_id: str, data: Any) -> None:
        signed = self.response_signer.sign_response(data, plugin_id=PLUGIN_ID, request_id=request_id)
        payload: dict[str, Any] = {"response": signed.response}
        if self.sign_responses:
            payload["signature"] = signed.signature
        self.channel.post_message({"type": request_id, "payload": payload}, "*")


class FakeSignEndpoint:
    """Signing endpoint served through httpx.MockTransport."""

    def __init__(self, signer: HostSigner):
        self.signer = signer
        self.calls: list[dict[str, Any]] = []
        self.fixed: SignedRequest | None = None
        self.status_code = 200
        self.client = SigningEndpointClient(SIGN_URL, transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "nope"})
        signed = self.fixed or self.signer.sign_request(body)
        return httpx.Response(200, json=signed.model_dump())


@pytest.fixture(scope="session")
def keys() -> tuple[str, str]:
    return generate_key_pair()


@pytest.fixture(scope="session")
def other_keys() -> tuple[str, str]:
    return generate_key_pair()


@pytest.fixture
def signer(keys) -> HostSigner:
    return HostSigner.from_pem(*keys)


@pytest.fixture
def channels() -> tuple[LocalFrameChannel, LocalFrameChannel]:
    return create_channel_pair("https://plugin.example", "https://host.example")


@pytest.fixture
def host_page(channels, signer) -> FakeHostPage:
    return FakeHostPage(channels[1], signer)


@pytest.fixture
def sign_endpoint(signer) -> FakeSignEndpoint:
    return FakeSignEndpoint(signer)


@pytest.fixture
def fast_settings() -> ClientConfig:
    return ClientConfig(timeout_ms=40, max_attempts=3)


@pytest.fixture
def make_client(keys, channels, host_page, sign_endpoint, fast_settings) -> Callable[..., Awaitable[PluginClient]]:
    """Async factory for an initialized PluginClient wired to the fakes."""

    async def _make(**kwargs: Any) -> PluginClient:
        kwargs.setdefault("settings", fast_settings)
        kwargs.setdefault("sign_client", sign_endpoint.client)
        return await PluginClient.create(IFRAME_UID, SIGN_URL, keys[1], channels[0], **kwargs)

    return _make


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.002)

    return _wait
