"""
Exception hierarchy and error handling utilities for milobanana.

Provides:
- The fixed JSON-RPC error code taxonomy
- Custom exception classes bound to a taxonomy code
- Safe error message formatting (no sensitive data leak)
- Exception classification for the RPC error boundary
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum, IntEnum
from typing import Any


class RpcErrorCode(IntEnum):
    """JSON-RPC error codes returned by every endpoint."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    AUTHENTICATION_ERROR = -32001
    AUTHORIZATION_ERROR = -32002
    VALIDATION_ERROR = -32003
    NOT_FOUND = -32004
    RATE_LIMIT_EXCEEDED = -32005


class ErrorCategory(Enum):
    """Error categories for classification."""
    FATAL = "fatal"
    RETRYABLE = "retryable"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


class MiloBananaError(Exception):
    """Base exception for all milobanana errors.

    ``http_status`` is the transport status used when the error reaches the
    HTTP layer; application errors stay at 200.
    """

    def __init__(
        self,
        message: str,
        code: RpcErrorCode = RpcErrorCode.INTERNAL_ERROR,
        data: Any | None = None,
        http_status: int = 200,
        category: ErrorCategory = ErrorCategory.FATAL,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data
        self.http_status = http_status
        self.category = category

    def to_rpc_error(self) -> dict[str, Any]:
        err: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            err["data"] = self.data
        return err

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


class ParseError(MiloBananaError):
    """Request body is not valid JSON."""

    def __init__(self, message: str = "Parse error", data: Any | None = None):
        super().__init__(message, code=RpcErrorCode.PARSE_ERROR, data=data, category=ErrorCategory.VALIDATION)


class InvalidEnvelopeError(MiloBananaError):
    """Malformed JSON-RPC envelope."""

    def __init__(self, reason: str):
        super().__init__(
            "Invalid JSON-RPC request format",
            code=RpcErrorCode.INVALID_REQUEST,
            data=reason,
            category=ErrorCategory.VALIDATION,
        )


class MethodNotFoundError(MiloBananaError):
    def __init__(self, method: str):
        super().__init__(
            f"Method '{method}' not found",
            code=RpcErrorCode.METHOD_NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
        )


class InvalidParamsError(MiloBananaError):
    def __init__(self, message: str, data: Any | None = None):
        super().__init__(message, code=RpcErrorCode.INVALID_PARAMS, data=data, category=ErrorCategory.VALIDATION)


class AuthenticationError(MiloBananaError):
    """Caller did not present (valid) credentials: "log in"."""

    def __init__(self, message: str, data: Any | None = None, http_status: int = 200):
        super().__init__(
            message,
            code=RpcErrorCode.AUTHENTICATION_ERROR,
            data=data,
            http_status=http_status,
            category=ErrorCategory.PERMISSION,
        )


class AuthorizationError(MiloBananaError):
    """Credential was presented but rejected: "retry login" / not an admin."""

    def __init__(self, message: str, data: Any | None = None, http_status: int = 403):
        super().__init__(
            message,
            code=RpcErrorCode.AUTHORIZATION_ERROR,
            data=data,
            http_status=http_status,
            category=ErrorCategory.PERMISSION,
        )


class ConfigurationError(MiloBananaError):
    """Server misconfiguration, never the caller's fault."""

    def __init__(self, message: str):
        super().__init__(message, code=RpcErrorCode.INTERNAL_ERROR, http_status=500)


class ValidationError(MiloBananaError):
    """Domain validation error (well-typed params that break a business rule)."""

    def __init__(self, message: str, data: Any | None = None):
        super().__init__(message, code=RpcErrorCode.VALIDATION_ERROR, data=data, category=ErrorCategory.VALIDATION)


class NotFoundError(MiloBananaError):
    """Domain resource not found."""

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        super().__init__(
            f"{resource_type} not found",
            code=RpcErrorCode.NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class RateLimitError(MiloBananaError):
    def __init__(self, message: str, retry_after_ms: int | None = None):
        super().__init__(
            message,
            code=RpcErrorCode.RATE_LIMIT_EXCEEDED,
            data={"retryAfterMs": retry_after_ms} if retry_after_ms else None,
            category=ErrorCategory.RATE_LIMIT,
        )


class InsufficientBalanceError(MiloBananaError):
    """Metered call refused before any side effect."""

    def __init__(self, current_points: int, required_points: int):
        super().__init__(
            f"Insufficient points. You need at least {required_points} point to generate images.",
            code=RpcErrorCode.INVALID_REQUEST,
            data={"currentPoints": current_points, "requiredPoints": required_points},
            category=ErrorCategory.VALIDATION,
        )
        self.current_points = current_points
        self.required_points = required_points


class GenerationError(MiloBananaError):
    """Generation provider failure."""

    def __init__(self, message: str, platform: str | None = None, is_retryable: bool = False):
        super().__init__(
            "Failed to generate content",
            code=RpcErrorCode.INTERNAL_ERROR,
            data={"message": message},
            category=ErrorCategory.RETRYABLE if is_retryable else ErrorCategory.FATAL,
        )
        self.platform = platform


class ProviderNotImplementedError(MiloBananaError):
    """Platform tag is known but has no working provider yet."""

    def __init__(self, platform: str, message: str | None = None):
        detail = message or f"{platform} service not yet implemented"
        super().__init__(
            "Platform not implemented",
            code=RpcErrorCode.INTERNAL_ERROR,
            data={"message": detail},
        )
        self.platform = platform


class WeChatAPIError(MiloBananaError):
    """WeChat endpoint could not be reached or returned garbage."""

    def __init__(self, message: str):
        super().__init__(f"WeChat API error: {message}", code=RpcErrorCode.INTERNAL_ERROR)


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).
    """
    exc_str = str(exc).lower()

    if isinstance(exc, MiloBananaError):
        return exc.code.name, exc.category, exc.category in (ErrorCategory.RETRYABLE, ErrorCategory.RATE_LIMIT)

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, ValueError):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    if isinstance(exc, KeyError):
        return "MISSING_KEY", ErrorCategory.VALIDATION, False

    if "timeout" in exc_str or "timed out" in exc_str:
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if "database is locked" in exc_str or "connection" in exc_str:
        return "STORAGE_UNAVAILABLE", ErrorCategory.RETRYABLE, True

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
