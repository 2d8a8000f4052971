"""Plugin-side request dispatcher.

PluginClient sends typed requests to the embedding page over a
MessageChannel and waits for the correlated response:

    client = await initialize(iframe_uid, sign_url, public_key, channel=channel)
    user = await client.get_user_info()
    await client.give_role(role_id, user_id)

Signed operations are first sent to the plugin author's signing endpoint,
which holds the private key; safe operations (init, navigate, permission
prompts) go out unsigned. Every attempt passes the rate limiter, retries
reuse the same request id, and inbound responses are verified against the
public key before they resolve the waiting caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from cgplugin.client.channel import WILDCARD_ORIGIN, MessageChannel
from cgplugin.client.correlator import Correlator
from cgplugin.client.rate_limit import RateLimiter, SlidingWindowRateLimiter
from cgplugin.client.sign_client import SigningEndpointClient
from cgplugin.config.schema import ClientConfig
from cgplugin.identity.keys import PublicKeyHolder
from cgplugin.protocol.models import (
    ActionResponsePayload,
    CommunityInfoResponsePayload,
    InboundMessage,
    InitResponse,
    NavigateResponse,
    PermissionResponse,
    PluginContextData,
    PluginResponse,
    RequestCategory,
    SafeRequestType,
    SignedEnvelope,
    SignedRequestType,
    UserFriendsResponsePayload,
    UserInfoResponsePayload,
)
from cgplugin.protocol.serialization import (
    decode_response_body,
    encode_safe_request,
    error_message_from_data,
    extract_request_id,
)
from cgplugin.utils.exceptions import (
    ClientDestroyedError,
    ConfigurationError,
    PluginLibError,
    RateLimitedError,
    RemoteError,
    RequestTimeoutError,
    SignatureFormatError,
    SignatureInvalidError,
    SigningEndpointError,
    UninitializedError,
    classify_exception,
    sanitize_error_message,
)
from cgplugin.utils.helpers import now_ms

M = TypeVar("M", bound=BaseModel)


@dataclass
class OutgoingRequest:
    """A sent request awaiting its correlated response."""

    request_id: str
    category: RequestCategory
    envelope: SignedEnvelope
    future: asyncio.Future[PluginResponse[Any]]
    attempts: int = 0
    timer: asyncio.TimerHandle | None = None

    def stop_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class PluginClient:
    """One live plugin session bound to a channel and a public key."""

    def __init__(
        self,
        iframe_uid: str,
        sign_url: str,
        public_key: PublicKeyHolder,
        channel: MessageChannel,
        *,
        settings: ClientConfig | None = None,
        limiter: RateLimiter | None = None,
        correlator: Correlator | None = None,
        sign_client: SigningEndpointClient | None = None,
    ):
        self.settings = settings or ClientConfig()
        self.iframe_uid = iframe_uid
        self.sign_url = sign_url
        self.public_key = public_key
        self.channel = channel
        self.target_origin = channel.parent_origin or WILDCARD_ORIGIN
        self._limiter = limiter or SlidingWindowRateLimiter(
            max_requests=self.settings.max_requests_per_minute,
            window_seconds=self.settings.rate_window_seconds,
        )
        self._correlator = correlator or Correlator()
        self._sign_client = sign_client or SigningEndpointClient(
            sign_url, timeout_seconds=self.settings.sign_timeout_seconds
        )
        self._outgoing: dict[str, OutgoingRequest] = {}
        self._context: PluginContextData | None = None
        self._last_safe_ms = 0
        self._listening = False
        self._destroyed = False

    @classmethod
    async def create(
        cls,
        iframe_uid: str,
        sign_url: str,
        public_key: str,
        channel: MessageChannel,
        **kwargs: Any,
    ) -> "PluginClient":
        """Import the key, start listening and run the init handshake."""
        if not iframe_uid:
            raise ConfigurationError("iframe_uid is required", field="iframe_uid")
        if not sign_url:
            raise ConfigurationError("sign_url is required", field="sign_url")
        holder = PublicKeyHolder.from_pem(public_key)
        client = cls(iframe_uid, sign_url, holder, channel, **kwargs)
        client._start_listening()
        try:
            await client._init_context_data()
        except BaseException:
            client.destroy()
            raise
        logger.info(f"Plugin client initialized for iframe {iframe_uid} (target origin {client.target_origin})")
        return client

    def matches(self, iframe_uid: str, sign_url: str, public_key: str) -> bool:
        return (
            not self._destroyed
            and self.iframe_uid == iframe_uid
            and self.sign_url == sign_url
            and self.public_key.pem == public_key
        )

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def pending_count(self) -> int:
        return len(self._outgoing)

    # ---- lifecycle ----

    def _start_listening(self) -> None:
        if not self._listening:
            self.channel.add_listener(self.handle_message)
            self._listening = True

    async def _init_context_data(self) -> None:
        response = await self._safe_request({"type": SafeRequestType.INIT.value})
        init = self._parse(response, InitResponse, "init").data
        self._context = PluginContextData(
            plugin_id=init.plugin_id,
            user_id=init.user_id,
            assignable_role_ids=tuple(init.assignable_role_ids or ()),
        )

    def destroy(self) -> None:
        """Stop listening and reject every pending caller with ClientDestroyedError."""
        if self._destroyed:
            return
        self._destroyed = True
        if self._listening:
            self.channel.remove_listener(self.handle_message)
            self._listening = False
        for outgoing in list(self._outgoing.values()):
            outgoing.stop_timer()
            self._correlator.cancel(outgoing.request_id)
            if not outgoing.future.done():
                outgoing.future.set_exception(ClientDestroyedError(outgoing.request_id))
        self._outgoing.clear()
        self._context = None
        logger.info(f"Plugin client destroyed for iframe {self.iframe_uid}")

    # ---- public operations ----

    def get_context_data(self) -> PluginContextData:
        if self._context is None or self._destroyed:
            raise UninitializedError()
        return self._context

    async def get_user_info(self) -> PluginResponse[UserInfoResponsePayload]:
        response = await self._request(SignedRequestType.REQUEST, {"type": "userInfo"})
        return self._parse(response, UserInfoResponsePayload, "userInfo")

    async def get_community_info(self) -> PluginResponse[CommunityInfoResponsePayload]:
        response = await self._request(SignedRequestType.REQUEST, {"type": "communityInfo"})
        return self._parse(response, CommunityInfoResponsePayload, "communityInfo")

    async def get_user_friends(self, limit: int, offset: int) -> PluginResponse[UserFriendsResponsePayload]:
        response = await self._request(
            SignedRequestType.REQUEST,
            {"type": "userFriends", "limit": limit, "offset": offset},
        )
        return self._parse(response, UserFriendsResponsePayload, "userFriends")

    async def give_role(self, role_id: str, user_id: str) -> PluginResponse[ActionResponsePayload]:
        response = await self._request(
            SignedRequestType.ACTION,
            {"type": "giveRole", "roleId": role_id, "userId": user_id},
        )
        return self._parse(response, ActionResponsePayload, "giveRole")

    async def navigate(self, url: str) -> PluginResponse[NavigateResponse]:
        """Ask the host to open url; the host decides whether to follow it."""
        self.get_context_data()
        response = await self._safe_request({"type": SafeRequestType.NAVIGATE.value, "to": url})
        return self._parse(response, NavigateResponse, "navigate")

    async def request_permission(self, permission: str) -> PluginResponse[PermissionResponse]:
        """Ask the host to prompt the user for permission."""
        self.get_context_data()
        response = await self._safe_request(
            {"type": SafeRequestType.REQUEST_PERMISSION.value, "permission": permission}
        )
        return self._parse(response, PermissionResponse, "requestPermission")

    # ---- send pipeline ----

    def _next_safe_request_id(self, operation: str) -> str:
        stamp = max(now_ms(), self._last_safe_ms + 1)
        self._last_safe_ms = stamp
        return f"safeRequest-{stamp}-{operation}"

    async def _safe_request(self, data: dict[str, Any]) -> PluginResponse[Any]:
        request_id = self._next_safe_request_id(str(data["type"]))
        envelope = SignedEnvelope(
            request=encode_safe_request(data, iframe_uid=self.iframe_uid, request_id=request_id)
        )
        return await self._dispatch(request_id, envelope, RequestCategory.SAFE)

    async def _request(self, request_type: SignedRequestType, data: dict[str, Any]) -> PluginResponse[Any]:
        context = self.get_context_data()
        pre_request = {
            "type": request_type.value,
            "data": data,
            "iframeUid": self.iframe_uid,
            "pluginId": context.plugin_id,
        }
        signed = await self._sign_client.sign(pre_request)
        try:
            request_id = extract_request_id(signed.request)
        except ValueError as exc:
            raise SigningEndpointError("signing endpoint returned a request without requestId") from exc
        if request_id in self._correlator:
            raise SigningEndpointError(f"signing endpoint returned duplicate requestId {request_id}")
        envelope = SignedEnvelope(request=signed.request, signature=signed.signature)
        return await self._dispatch(request_id, envelope, RequestCategory.SIGNED)

    async def _dispatch(
        self,
        request_id: str,
        envelope: SignedEnvelope,
        category: RequestCategory,
    ) -> PluginResponse[Any]:
        if self._destroyed:
            raise UninitializedError()
        if not self._limiter.admit():
            logger.warning(f"Rate limit reached for iframe {self.iframe_uid}, {request_id} not sent")
            raise self._rate_limited()

        outgoing = OutgoingRequest(
            request_id=request_id,
            category=category,
            envelope=envelope,
            future=asyncio.get_running_loop().create_future(),
        )
        self._correlator.register(request_id, lambda outcome: self._settle(outgoing, outcome))
        self._outgoing[request_id] = outgoing
        try:
            self._post(outgoing)
            return await outgoing.future
        finally:
            outgoing.stop_timer()
            self._correlator.cancel(request_id)
            self._outgoing.pop(request_id, None)

    def _post(self, outgoing: OutgoingRequest) -> None:
        outgoing.attempts += 1
        logger.debug(f"Sending {outgoing.category.value} request {outgoing.request_id} (attempt {outgoing.attempts})")
        self.channel.post_message(outgoing.envelope.to_message(), self.target_origin)
        loop = asyncio.get_running_loop()
        outgoing.timer = loop.call_later(self.settings.timeout_ms / 1000.0, self._on_attempt_timeout, outgoing)

    def _on_attempt_timeout(self, outgoing: OutgoingRequest) -> None:
        outgoing.timer = None
        if outgoing.future.done():
            return
        if outgoing.attempts >= self.settings.max_attempts:
            self._correlator.cancel(outgoing.request_id)
            logger.debug(f"Request {outgoing.request_id} timed out after {outgoing.attempts} attempts")
            outgoing.future.set_exception(
                RequestTimeoutError(outgoing.request_id, outgoing.attempts, self.settings.timeout_ms / 1000.0)
            )
            return
        if not self._limiter.admit():
            self._correlator.cancel(outgoing.request_id)
            logger.warning(f"Rate limit reached for iframe {self.iframe_uid}, retry of {outgoing.request_id} not sent")
            outgoing.future.set_exception(self._rate_limited())
            return
        logger.debug(f"Retrying request {outgoing.request_id}")
        try:
            self._post(outgoing)
        except Exception as exc:
            code, _, _ = classify_exception(exc)
            logger.error(f"Re-send of {outgoing.request_id} failed ({code}): {sanitize_error_message(str(exc))}")
            self._correlator.cancel(outgoing.request_id)
            outgoing.future.set_exception(exc)

    def _settle(self, outgoing: OutgoingRequest, outcome: PluginResponse[Any] | PluginLibError) -> None:
        outgoing.stop_timer()
        if outgoing.future.done():
            return
        if isinstance(outcome, PluginLibError):
            outgoing.future.set_exception(outcome)
        else:
            outgoing.future.set_result(outcome)

    def _rate_limited(self) -> RateLimitedError:
        return RateLimitedError(
            self.iframe_uid,
            getattr(self._limiter, "max_requests", 0),
            getattr(self._limiter, "window_seconds", 0.0),
        )

    # ---- inbound ----

    def handle_message(self, data: Any, origin: str | None = None) -> None:
        """Channel listener: verify, decode and route one inbound message."""
        if self.target_origin != WILDCARD_ORIGIN and origin != self.target_origin:
            logger.warning(f"Dropping message from unexpected origin {origin}")
            return
        try:
            message = InboundMessage.model_validate(data)
        except ValidationError:
            logger.debug("Dropping malformed inbound message")
            return

        request_id = message.request_id
        if request_id not in self._correlator:
            logger.debug(f"Dropping response for unknown or settled request {request_id}")
            return

        response = message.payload.response
        signature = message.payload.signature
        if signature:
            try:
                valid = self.public_key.verify_text(response, signature)
            except SignatureFormatError:
                valid = False
            if not valid:
                logger.warning(f"Invalid signature on response {request_id}")
                self._correlator.resolve(request_id, SignatureInvalidError(request_id))
                return

        try:
            body = decode_response_body(response)
        except (ValueError, RecursionError):
            logger.debug(f"Dropping undecodable response for {request_id}")
            return

        if body.request_id is not None and body.request_id != request_id:
            logger.warning(f"Response body for {body.request_id} delivered as {request_id}")
            self._correlator.resolve(request_id, SignatureInvalidError(request_id))
            return

        error = error_message_from_data(body.data)
        if error is not None:
            self._correlator.resolve(request_id, RemoteError(error, request_id=request_id, data=body.data))
            return
        self._correlator.resolve(request_id, PluginResponse(data=body.data, raw_response=response))

    @staticmethod
    def _parse(response: PluginResponse[Any], model: type[M], operation: str) -> PluginResponse[M]:
        try:
            data = model.model_validate(response.data)
        except ValidationError as exc:
            raise RemoteError(f"unexpected {operation} response payload", data=response.data) from exc
        return PluginResponse(data=data, raw_response=response.raw_response)
