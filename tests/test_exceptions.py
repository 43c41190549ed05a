import asyncio

from milobanana.utils.exceptions import (
    ErrorCategory,
    GenerationError,
    InsufficientBalanceError,
    InvalidEnvelopeError,
    MethodNotFoundError,
    NotFoundError,
    ProviderNotImplementedError,
    RpcErrorCode,
    classify_exception,
    sanitize_error_message,
)


def test_error_codes_match_wire_taxonomy():
    assert {c.name: int(c) for c in RpcErrorCode} == {
        "PARSE_ERROR": -32700,
        "INVALID_REQUEST": -32600,
        "METHOD_NOT_FOUND": -32601,
        "INVALID_PARAMS": -32602,
        "INTERNAL_ERROR": -32603,
        "AUTHENTICATION_ERROR": -32001,
        "AUTHORIZATION_ERROR": -32002,
        "VALIDATION_ERROR": -32003,
        "NOT_FOUND": -32004,
        "RATE_LIMIT_EXCEEDED": -32005,
    }


def test_to_rpc_error_omits_missing_data():
    err = MethodNotFoundError("x.y").to_rpc_error()
    assert err == {"code": -32601, "message": "Method 'x.y' not found"}


def test_invalid_envelope_carries_reason():
    err = InvalidEnvelopeError("Invalid JSON-RPC version").to_rpc_error()
    assert err["code"] == -32600
    assert err["message"] == "Invalid JSON-RPC request format"
    assert err["data"] == "Invalid JSON-RPC version"


def test_insufficient_balance_payload():
    err = InsufficientBalanceError(0, 1)
    assert err.code is RpcErrorCode.INVALID_REQUEST
    assert err.data == {"currentPoints": 0, "requiredPoints": 1}
    assert "at least 1 point" in err.message


def test_provider_errors():
    assert ProviderNotImplementedError("openai").to_rpc_error() == {
        "code": -32603,
        "message": "Platform not implemented",
        "data": {"message": "openai service not yet implemented"},
    }
    gen = GenerationError("HTTP 500", platform="gemini", is_retryable=True)
    assert gen.message == "Failed to generate content"
    assert gen.data == {"message": "HTTP 500"}
    assert gen.category is ErrorCategory.RETRYABLE


def test_not_found_message():
    assert NotFoundError("Prompt", 7).message == "Prompt not found"


def test_sanitize_error_message_redacts_secrets():
    text = "auth failed: Bearer abc.def.ghi api_key=sk-abcdefghijklmnopqrstuvwxyz"
    sanitized = sanitize_error_message(text)
    assert "abc.def.ghi" not in sanitized
    assert "sk-abcdefghijklmnopqrstuvwxyz" not in sanitized
    assert "[REDACTED]" in sanitized


def test_classify_exception():
    assert classify_exception(asyncio.TimeoutError())[0] == "TIMEOUT"
    assert classify_exception(ValueError("bad"))[1] is ErrorCategory.VALIDATION
    assert classify_exception(RuntimeError("database is locked"))[0] == "STORAGE_UNAVAILABLE"
    assert classify_exception(GenerationError("x", is_retryable=True))[2] is True
    assert classify_exception(RuntimeError("boom")) == ("INTERNAL_ERROR", ErrorCategory.FATAL, False)
