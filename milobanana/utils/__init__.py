"""Utility functions for milobanana."""

from milobanana.utils.helpers import ensure_dir, mask_secret, now_iso, now_ms
from milobanana.utils.exceptions import (
    MiloBananaError,
    RpcErrorCode,
    ErrorCategory,
    ParseError,
    InvalidEnvelopeError,
    MethodNotFoundError,
    InvalidParamsError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    RateLimitError,
    InsufficientBalanceError,
    GenerationError,
    ProviderNotImplementedError,
    WeChatAPIError,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "ensure_dir",
    "mask_secret",
    "now_iso",
    "now_ms",
    "MiloBananaError",
    "RpcErrorCode",
    "ErrorCategory",
    "ParseError",
    "InvalidEnvelopeError",
    "MethodNotFoundError",
    "InvalidParamsError",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "RateLimitError",
    "InsufficientBalanceError",
    "GenerationError",
    "ProviderNotImplementedError",
    "WeChatAPIError",
    "classify_exception",
    "sanitize_error_message",
]
