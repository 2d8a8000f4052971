"""Wire models for plugin <-> host messages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class RequestCategory(str, Enum):
    """How an outgoing request is authenticated."""

    SAFE = "safe"
    SIGNED = "signed"


class SignedRequestType(str, Enum):
    ACTION = "action"
    REQUEST = "request"


class SafeRequestType(str, Enum):
    INIT = "init"
    NAVIGATE = "navigate"
    REQUEST_PERMISSION = "requestPermission"


SAFE_REQUEST_TYPE = "safeRequest"


class WireModel(BaseModel):
    """Base for camelCase wire payloads; accepts snake_case names too."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class SignedEnvelope(BaseModel):
    """Outbound channel message. signature is absent for safe requests."""

    request: str
    signature: str | None = None

    def to_message(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class InboundPayload(BaseModel):
    response: str
    signature: str | None = None


class InboundMessage(BaseModel):
    """Inbound channel message; type carries the originating request id."""

    request_id: str = Field(alias="type", min_length=1)
    payload: InboundPayload


class PreRequest(WireModel):
    """Body posted to the signing endpoint, before a requestId is assigned."""

    type: SignedRequestType
    data: dict[str, Any]
    iframe_uid: str = Field(alias="iframeUid")
    plugin_id: str = Field(alias="pluginId")


class SignedRequest(BaseModel):
    """Signing endpoint response."""

    request: str
    signature: str


class SignedResponse(BaseModel):
    response: str
    signature: str


class ResponseBody(WireModel):
    """Parsed form of the serialized response string."""

    data: Any = None
    plugin_id: str | None = Field(default=None, alias="pluginId")
    request_id: str | None = Field(default=None, alias="requestId")


@dataclass(frozen=True, slots=True)
class PluginResponse(Generic[T]):
    """Typed result of a public operation plus the exact response string."""

    data: T
    raw_response: str


# ---------------------------------------------------------------------------
# Context and response payloads
# ---------------------------------------------------------------------------


class PluginContextData(WireModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    plugin_id: str = Field(alias="pluginId")
    user_id: str = Field(alias="userId")
    assignable_role_ids: tuple[str, ...] = Field(default=(), alias="assignableRoleIds")


class InitResponse(WireModel):
    plugin_id: str = Field(alias="pluginId")
    user_id: str = Field(alias="userId")
    assignable_role_ids: list[str] | None = Field(default=None, alias="assignableRoleIds")


class UserInfoResponsePayload(WireModel):
    id: str
    name: str
    roles: list[str] = Field(default_factory=list)


class CommunityRole(WireModel):
    id: str
    title: str
    type: str
    permissions: list[str] = Field(default_factory=list)
    assignment_rules: dict[str, Any] | None = Field(default=None, alias="assignmentRules")


class CommunityInfoResponsePayload(WireModel):
    id: str
    title: str
    roles: list[CommunityRole] = Field(default_factory=list)


class Friend(WireModel):
    id: str
    name: str


class UserFriendsResponsePayload(WireModel):
    friends: list[Friend] = Field(default_factory=list)


class ActionResponsePayload(WireModel):
    success: bool


class NavigateResponse(WireModel):
    ok: bool = True


class PermissionResponse(WireModel):
    ok: bool = True
