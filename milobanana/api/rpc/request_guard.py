"""RPC request guard: envelope, method lookup, principal and params, in that order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from milobanana.api.rpc.envelope import validate_envelope
from milobanana.api.rpc.router import MethodSpec, RouteNamespace
from milobanana.auth.principal import Principal, PrincipalResolver
from milobanana.utils.exceptions import MiloBananaError


@dataclass(slots=True)
class RpcRequestGuardResult:
    """Prepared request context after validation and guard checks."""

    request_id: Any
    method: str | None
    spec: MethodSpec | None
    principal: Principal | None
    params: BaseModel | None
    error: MiloBananaError | None


def prepare_rpc_request_context(
    *,
    body: Any,
    namespace: RouteNamespace,
    resolver: PrincipalResolver,
    authorization: str | None,
    log_denied: Callable[[str, str, str], None],
) -> RpcRequestGuardResult:
    """Validate the envelope and apply method, principal and params guards.

    The first failing check wins; nothing after it runs. An invalid envelope
    is answered with ``id = null`` since its id cannot be trusted.
    """
    try:
        envelope = validate_envelope(body)
    except MiloBananaError as e:
        return RpcRequestGuardResult(
            request_id=None, method=None, spec=None, principal=None, params=None, error=e,
        )

    method = envelope.method
    request_id = envelope.id
    try:
        spec = namespace.resolve(method)
    except MiloBananaError as e:
        return RpcRequestGuardResult(
            request_id=request_id, method=method, spec=None, principal=None, params=None, error=e,
        )

    try:
        principal = resolver.resolve(spec.requirement, authorization)
    except MiloBananaError as e:
        log_denied(method, spec.requirement.value, e.code.name)
        return RpcRequestGuardResult(
            request_id=request_id, method=method, spec=spec, principal=None, params=None, error=e,
        )

    try:
        params = spec.parse_params(envelope.params)
    except MiloBananaError as e:
        return RpcRequestGuardResult(
            request_id=request_id, method=method, spec=spec, principal=principal, params=None, error=e,
        )

    return RpcRequestGuardResult(
        request_id=request_id,
        method=method,
        spec=spec,
        principal=principal,
        params=params,
        error=None,
    )
