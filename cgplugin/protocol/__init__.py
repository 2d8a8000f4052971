"""Plugin <-> host wire protocol: models and serialization."""

from cgplugin.protocol.models import (
    ActionResponsePayload,
    CommunityInfoResponsePayload,
    CommunityRole,
    Friend,
    InboundMessage,
    InboundPayload,
    InitResponse,
    NavigateResponse,
    PermissionResponse,
    PluginContextData,
    PluginResponse,
    PreRequest,
    RequestCategory,
    ResponseBody,
    SafeRequestType,
    SignedEnvelope,
    SignedRequest,
    SignedRequestType,
    SignedResponse,
    UserFriendsResponsePayload,
    UserInfoResponsePayload,
)
from cgplugin.protocol.serialization import dumps_compact, encode_response, extract_request_id

__all__ = [
    "ActionResponsePayload",
    "CommunityInfoResponsePayload",
    "CommunityRole",
    "Friend",
    "InboundMessage",
    "InboundPayload",
    "InitResponse",
    "NavigateResponse",
    "PermissionResponse",
    "PluginContextData",
    "PluginResponse",
    "PreRequest",
    "RequestCategory",
    "ResponseBody",
    "SafeRequestType",
    "SignedEnvelope",
    "SignedRequest",
    "SignedRequestType",
    "SignedResponse",
    "UserFriendsResponsePayload",
    "UserInfoResponsePayload",
    "dumps_compact",
    "encode_response",
    "extract_request_id",
]
