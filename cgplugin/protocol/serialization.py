"""Serialization helpers for request/response bodies.

The signature covers the exact bytes of the serialized string, so bodies are
serialized once (compact separators, insertion order, raw non-ASCII) and the
string is then carried verbatim.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import BaseModel

from .models import SAFE_REQUEST_TYPE, ResponseBody


def dumps_compact(obj: Any) -> str:
    """Compact JSON as browsers produce it: no spaces, insertion order, raw non-ASCII."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def safe_dict(value: Any) -> dict[str, Any]:
    """Return the value when dict-like, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def to_wire_dict(value: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    """Normalize a mapping or wire model to a plain dict keyed by wire names."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json", exclude_none=True)
    return dict(value)


def encode_safe_request(data: Mapping[str, Any], *, iframe_uid: str, request_id: str) -> str:
    return dumps_compact(
        {
            "type": SAFE_REQUEST_TYPE,
            "data": dict(data),
            "iframeUid": iframe_uid,
            "requestId": request_id,
        }
    )


def encode_signed_request(pre_request: Mapping[str, Any], *, request_id: str) -> str:
    body = dict(pre_request)
    body.pop("requestId", None)
    body["requestId"] = request_id
    return dumps_compact(body)


def encode_response(data: Any, *, plugin_id: str, request_id: str) -> str:
    return dumps_compact({"data": data, "pluginId": plugin_id, "requestId": request_id})


def extract_request_id(request: str) -> str:
    """Parse a serialized request and return its requestId."""
    body = json.loads(request)
    request_id = safe_dict(body).get("requestId")
    if not isinstance(request_id, str) or not request_id:
        raise ValueError("serialized request has no requestId")
    return request_id


def decode_response_body(response: str) -> ResponseBody:
    return ResponseBody.model_validate(json.loads(response))


def error_message_from_data(data: Any) -> str | None:
    """Return the error message when data has the explicit error shape."""
    if not isinstance(data, dict) or "error" not in data:
        return None
    err = data.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    if isinstance(err, str) and err.strip():
        return err.strip()
    return "remote error"
