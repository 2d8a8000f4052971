"""
Exception hierarchy and error helpers for cgplugin.

Provides:
- Protocol error classes with stable error codes
- Error categorization (retryable, timeout, security, ...)
- Safe error message formatting (no key or signature leak in logs)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    USAGE = "usage"
    SECURITY = "security"
    REMOTE = "remote"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


class PluginLibError(Exception):
    """Base exception for all cgplugin errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ConfigurationError(PluginLibError):
    """Malformed key material or a missing initialization argument."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="CONFIGURATION_ERROR", category=ErrorCategory.FATAL, details=details)


class UninitializedError(PluginLibError):
    """A public operation was invoked before a successful initialize()."""

    def __init__(self, component: str = "PluginClient"):
        super().__init__(
            f"{component} is not initialized. Call initialize() first.",
            code="UNINITIALIZED",
            category=ErrorCategory.USAGE,
            details={"component": component},
        )


class RateLimitedError(PluginLibError):
    """Sliding window ceiling exceeded for outgoing messages."""

    def __init__(self, iframe_uid: str, limit: int, window_seconds: float):
        super().__init__(
            f"Max requests per minute reached for iframe: {iframe_uid}",
            code="RATE_LIMITED",
            category=ErrorCategory.RATE_LIMIT,
            details={"iframe_uid": iframe_uid, "limit": limit, "window_seconds": window_seconds},
        )


class RequestTimeoutError(PluginLibError):
    """All send attempts were exhausted without a correlated response."""

    def __init__(self, request_id: str, attempts: int, timeout_seconds: float):
        super().__init__(
            f"Request {request_id} timed out after {attempts} attempts",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"request_id": request_id, "attempts": attempts, "timeout_seconds": timeout_seconds},
        )


class SignatureInvalidError(PluginLibError):
    """An inbound response signature did not verify against the public key."""

    def __init__(self, request_id: str):
        super().__init__(
            f"Invalid signature for response {request_id}",
            code="SIGNATURE_INVALID",
            category=ErrorCategory.SECURITY,
            details={"request_id": request_id},
        )


class SignatureFormatError(PluginLibError):
    """A signature is not valid base64."""

    def __init__(self, message: str = "signature is not valid base64"):
        super().__init__(message, code="SIGNATURE_FORMAT", category=ErrorCategory.VALIDATION)


class RemoteError(PluginLibError):
    """The host answered with an explicit error shape."""

    def __init__(self, message: str, request_id: str | None = None, data: Any = None):
        super().__init__(
            message,
            code="REMOTE_ERROR",
            category=ErrorCategory.REMOTE,
            details={"request_id": request_id, "data": data},
        )


class SigningEndpointError(PluginLibError):
    """The signing endpoint could not produce a signed request."""

    def __init__(self, message: str, status_code: int | None = None, is_retryable: bool = False):
        category = ErrorCategory.RETRYABLE if is_retryable else ErrorCategory.FATAL
        super().__init__(
            message,
            code="SIGNING_ENDPOINT_ERROR",
            category=category,
            details={"status_code": status_code, "is_retryable": is_retryable},
        )


class ClientDestroyedError(PluginLibError):
    """The client was torn down while the request was still pending."""

    def __init__(self, request_id: str):
        super().__init__(
            f"Client destroyed while request {request_id} was pending",
            code="CLIENT_DESTROYED",
            category=ErrorCategory.FATAL,
            details={"request_id": request_id},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"-----BEGIN [A-Z ]+-----.*?-----END [A-Z ]+-----", re.DOTALL),
    re.compile(r"(signature|token|secret|password|private[_-]?key)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[A-Za-z0-9+/]{64,}={0,2}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove key material, signatures and tokens from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Returns:
        Tuple of (error_code, category, should_retry)
    """
    if isinstance(exc, PluginLibError):
        return exc.code, exc.category, exc.category in (
            ErrorCategory.RETRYABLE,
            ErrorCategory.TIMEOUT,
            ErrorCategory.RATE_LIMIT,
        )

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
