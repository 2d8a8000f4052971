"""HTTP client for the plugin author's request-signing endpoint."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from cgplugin.protocol.models import SignedRequest
from cgplugin.utils.exceptions import SigningEndpointError

DEFAULT_SIGN_TIMEOUT_SECONDS = 10.0


class SigningEndpointClient:
    """POSTs a pre-request and returns the {request, signature} pair verbatim."""

    def __init__(
        self,
        sign_url: str,
        *,
        timeout_seconds: float = DEFAULT_SIGN_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.sign_url = sign_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        return status_code >= 500 or status_code in {408, 425, 429}

    async def sign(self, pre_request: dict[str, Any]) -> SignedRequest:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(self.sign_url, json=pre_request)
        except httpx.TimeoutException as exc:
            raise SigningEndpointError(
                f"signing endpoint timeout: {self.sign_url}",
                is_retryable=True,
            ) from exc
        except httpx.RequestError as exc:
            raise SigningEndpointError(
                f"signing endpoint network error: {self.sign_url}: {exc}",
                is_retryable=True,
            ) from exc

        if resp.status_code >= 400:
            raise SigningEndpointError(
                f"signing endpoint http error {resp.status_code}",
                status_code=resp.status_code,
                is_retryable=self._is_retryable_status(resp.status_code),
            )

        try:
            return SignedRequest.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise SigningEndpointError(
                "signing endpoint bad response: expected {request, signature}",
                status_code=resp.status_code,
            ) from exc
