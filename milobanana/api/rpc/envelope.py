"""JSON-RPC 2.0 envelope validation and response encoding."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic import ValidationError as PydanticValidationError

from milobanana.utils.exceptions import InvalidEnvelopeError

JSONRPC_VERSION = "2.0"

_FIELD_REASONS = {
    "jsonrpc": "Invalid JSON-RPC version",
    "method": "Invalid method",
}


class RpcEnvelope(BaseModel):
    """A well-formed request. ``params`` and ``id`` are checked later, per method."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: StrictStr = Field(min_length=1)
    params: Any = None
    id: Any = None


def validate_envelope(body: Any) -> RpcEnvelope:
    if not isinstance(body, dict):
        raise InvalidEnvelopeError("Request body must be a JSON object")
    try:
        return RpcEnvelope.model_validate(body)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else ""
        raise InvalidEnvelopeError(_FIELD_REASONS.get(field, first["msg"])) from None


def success_response(result: Any, request_id: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def error_response(error: dict[str, Any], request_id: Any = None) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "error": error, "id": request_id}
