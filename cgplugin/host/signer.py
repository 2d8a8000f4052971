"""Host-side request signer and response verifier.

Runs where the private key lives (the plugin author's server). Typical
signing route:

    signer = initialize(private_pem, public_pem)
    signed = signer.sign_request(await request.json())
    return {"request": signed.request, "signature": signed.signature}

The pair must be returned verbatim: the signature covers the exact bytes of
the serialized request string.
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping

from loguru import logger
from pydantic import BaseModel

from cgplugin.identity.keys import KeyPair
from cgplugin.protocol.models import SignedRequest, SignedResponse
from cgplugin.protocol.serialization import encode_response, encode_signed_request, to_wire_dict
from cgplugin.utils.exceptions import UninitializedError
from cgplugin.utils.helpers import now_ms


def new_request_id() -> str:
    return f"requestId-{now_ms()}-{uuid.uuid4()}"


class HostSigner:
    """Stateless per call; holds only the imported key pair."""

    def __init__(self, keys: KeyPair):
        self.keys = keys

    @classmethod
    def from_pem(cls, private_key: str, public_key: str) -> "HostSigner":
        return cls(KeyPair.from_pem(private_key, public_key))

    def matches(self, private_key: str, public_key: str) -> bool:
        return self.keys.private_pem == private_key and self.keys.public_pem == public_key

    def sign_request(self, pre_request: Mapping[str, Any] | BaseModel) -> SignedRequest:
        """Assign a fresh requestId, serialize and sign."""
        request_id = new_request_id()
        request = encode_signed_request(to_wire_dict(pre_request), request_id=request_id)
        logger.debug(f"Signed request {request_id}")
        return SignedRequest(request=request, signature=self.keys.sign_text(request))

    def verify_response(self, response: str, signature: str) -> bool:
        """True when signature matches the exact response string.

        Raises SignatureFormatError when signature is not base64.
        """
        return self.keys.public.verify_text(response, signature)

    def sign_response(self, data: Any, *, plugin_id: str, request_id: str) -> SignedResponse:
        """Serialize and sign a response body for delivery to a plugin."""
        response = encode_response(data, plugin_id=plugin_id, request_id=request_id)
        return SignedResponse(response=response, signature=self.keys.sign_text(response))


class HostSignerSlot:
    """Idempotent initialize-or-replace handle for a HostSigner."""

    def __init__(self):
        self._signer: HostSigner | None = None

    @property
    def current(self) -> HostSigner | None:
        return self._signer

    def initialize(self, private_key: str, public_key: str) -> HostSigner:
        current = self._signer
        if current is not None and current.matches(private_key, public_key):
            return current
        signer = HostSigner.from_pem(private_key, public_key)
        if current is not None:
            logger.info("Replacing host signer key material")
        self._signer = signer
        return signer

    def get(self) -> HostSigner:
        if self._signer is None:
            raise UninitializedError("HostSigner")
        return self._signer

    def destroy(self) -> None:
        self._signer = None


default_host_slot = HostSignerSlot()


def initialize(private_key: str, public_key: str) -> HostSigner:
    """Initialize (or reuse) the process-wide signer in default_host_slot."""
    return default_host_slot.initialize(private_key, public_key)


def get_instance() -> HostSigner:
    return default_host_slot.get()
