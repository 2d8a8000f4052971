"""Request-signing HTTP endpoint for plugin authors."""

from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from cgplugin.host.signer import HostSigner
from cgplugin.protocol.models import PreRequest, SignedRequest


def create_sign_app(
    signer: HostSigner,
    *,
    allowed_plugin_ids: Iterable[str] | None = None,
    cors_origins: Iterable[str] | None = None,
) -> FastAPI:
    """Create FastAPI app exposing POST /sign for the plugin's signed requests."""
    app = FastAPI(title="cgplugin Sign Endpoint")
    allowed = set(allowed_plugin_ids) if allowed_plugin_ids else None

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_methods=["POST"],
            allow_headers=["*"],
        )

    @app.post("/sign", response_model=SignedRequest)
    async def sign(pre_request: PreRequest) -> SignedRequest:
        if allowed is not None and pre_request.plugin_id not in allowed:
            logger.warning(f"Refusing to sign for unknown plugin {pre_request.plugin_id}")
            raise HTTPException(status_code=403, detail="plugin not allowed")
        return signer.sign_request(pre_request)

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True}

    return app
