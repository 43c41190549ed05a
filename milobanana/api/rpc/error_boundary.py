"""Common RPC error-boundary helpers for server dispatch."""

from __future__ import annotations

from typing import Any, Callable

from milobanana.utils.exceptions import (
    MiloBananaError,
    RpcErrorCode,
    classify_exception,
    sanitize_error_message,
)


RpcResult = tuple[bool, Any | None, dict[str, Any] | None]

# Shapes of the `data` member for unexpected handler failures.
DETAIL_PLAIN = "plain"  # the sanitized text itself
DETAIL_SERVER_ERROR = "server_error"  # {"error": "server_error", "details": text}
DETAIL_MESSAGE = "message"  # {"message": text}


def milobanana_error_result(
    *,
    method: str,
    exc: MiloBananaError,
    log_warning: Callable[..., None],
) -> RpcResult:
    """Map MiloBananaError to its own code, message and data."""
    log_warning("RPC method {} failed with {}: {}", method, exc.code.name, exc.message)
    return False, None, exc.to_rpc_error()


def unhandled_exception_result(
    *,
    method: str,
    exc: Exception,
    failure_message: str,
    detail_shape: str,
    log_exception: Callable[..., None],
) -> RpcResult:
    """Map unexpected exceptions to INTERNAL_ERROR with the method's failure message."""
    code, _, _ = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc) or type(exc).__name__)
    log_exception("RPC method {} failed with [{}]: {}", method, code, sanitized)
    data: Any = sanitized
    if detail_shape == DETAIL_SERVER_ERROR:
        data = {"error": "server_error", "details": sanitized}
    elif detail_shape == DETAIL_MESSAGE:
        data = {"message": sanitized}
    return False, None, {
        "code": int(RpcErrorCode.INTERNAL_ERROR),
        "message": failure_message,
        "data": data,
    }


def http_status_for(exc: Exception | None) -> int:
    """Transport status for a JSON-RPC error body; application errors stay at 200."""
    if isinstance(exc, MiloBananaError):
        return exc.http_status
    return 200
