"""Run one JSON-RPC call through guard, handler and error boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from milobanana.api.rpc.context_models import RpcCallContext, RpcServices
from milobanana.api.rpc.envelope import error_response, success_response
from milobanana.api.rpc.error_boundary import (
    http_status_for,
    milobanana_error_result,
    unhandled_exception_result,
)
from milobanana.api.rpc.request_guard import prepare_rpc_request_context
from milobanana.api.rpc.router import MethodRouter
from milobanana.utils.exceptions import MiloBananaError


@dataclass(slots=True)
class RpcReply:
    status_code: int
    body: dict[str, Any]


def _log_denied(method: str, requirement: str, code: str) -> None:
    logger.info("RPC denied method={} requirement={} code={}", method, requirement, code)


class RpcDispatcher:
    def __init__(self, router: MethodRouter, services: RpcServices):
        self.router = router
        self.services = services

    async def dispatch(
        self,
        namespace: str,
        body: Any,
        *,
        authorization: str | None = None,
        client_host: str | None = None,
    ) -> RpcReply:
        guard = prepare_rpc_request_context(
            body=body,
            namespace=self.router.namespace(namespace),
            resolver=self.services.resolver,
            authorization=authorization,
            log_denied=_log_denied,
        )
        if guard.error is not None:
            return RpcReply(http_status_for(guard.error), error_response(guard.error.to_rpc_error(), guard.request_id))

        if guard.spec is None or guard.method is None or guard.principal is None:
            raise RuntimeError("request guard passed without a resolved method and principal")
        ctx = RpcCallContext(
            method=guard.method,
            request_id=guard.request_id,
            principal=guard.principal,
            services=self.services,
            client_host=client_host,
        )
        status = 200
        try:
            result = await guard.spec.handler(ctx, guard.params)
            ok, payload, error = True, result, None
        except MiloBananaError as e:
            status = http_status_for(e)
            ok, payload, error = milobanana_error_result(method=guard.method, exc=e, log_warning=logger.warning)
        except Exception as e:
            ok, payload, error = unhandled_exception_result(
                method=guard.method,
                exc=e,
                failure_message=guard.spec.failure_message,
                detail_shape=guard.spec.failure_detail,
                log_exception=logger.exception,
            )

        if ok:
            return RpcReply(200, success_response(payload, guard.request_id))
        return RpcReply(status, error_response(error or {}, guard.request_id))
