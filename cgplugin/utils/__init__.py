"""Utility functions for cgplugin."""

from cgplugin.utils.helpers import ensure_dir, now_ms
from cgplugin.utils.exceptions import (
    PluginLibError,
    ConfigurationError,
    UninitializedError,
    RateLimitedError,
    RequestTimeoutError,
    SignatureInvalidError,
    SignatureFormatError,
    RemoteError,
    SigningEndpointError,
    ClientDestroyedError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "ensure_dir",
    "now_ms",
    "PluginLibError",
    "ConfigurationError",
    "UninitializedError",
    "RateLimitedError",
    "RequestTimeoutError",
    "SignatureInvalidError",
    "SignatureFormatError",
    "RemoteError",
    "SigningEndpointError",
    "ClientDestroyedError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
]
