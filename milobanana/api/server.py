"""FastAPI application: one POST endpoint per route namespace."""

from __future__ import annotations

import json
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from milobanana import __version__
from milobanana.api.rpc.context_models import RpcServices
from milobanana.api.rpc.dispatcher import RpcDispatcher
from milobanana.api.rpc.envelope import error_response
from milobanana.api.rpc.router import RouteNamespace
from milobanana.api.rpc.routes import build_router
from milobanana.auth.passwords import PasswordHasher
from milobanana.auth.principal import PrincipalResolver
from milobanana.auth.tokens import TokenSigner
from milobanana.config.loader import load_config
from milobanana.config.schema import Config
from milobanana.gateway.rate_limit import (
    RATE_LIMIT_SCOPE_AUTH,
    RATE_LIMIT_SCOPE_GLOBAL,
    RequestRateLimiter,
    build_rate_limiters,
)
from milobanana.metering.ledger import PointsLedgerGateway
from milobanana.providers.registry import ProviderRegistry
from milobanana.storage.sqlite_store import SqliteRecordStore
from milobanana.utils.exceptions import ParseError, RateLimitError
from milobanana.wechat.client import WeChatClient

_RATE_LIMIT_MESSAGES = {
    RATE_LIMIT_SCOPE_GLOBAL: "Too many requests from this IP, please try again later.",
    RATE_LIMIT_SCOPE_AUTH: "Too many authentication attempts, please try again later.",
}


def build_services(
    config: Config,
    *,
    store: SqliteRecordStore | None = None,
    providers: ProviderRegistry | None = None,
    wechat_client: WeChatClient | None = None,
) -> RpcServices:
    """Construct every collaborator once from the configuration value."""
    if store is None:
        seed = config.storage.prompt_seed_path
        store = SqliteRecordStore(
            Path(config.storage.db_path).expanduser(),
            default_points=config.storage.default_points,
            default_generation=config.generation,
            prompt_seed_path=Path(seed).expanduser() if seed else None,
        )
    signer = TokenSigner.from_config(config.auth)
    return RpcServices(
        config=config,
        store=store,
        signer=signer,
        hasher=PasswordHasher(rounds=config.auth.bcrypt_rounds),
        resolver=PrincipalResolver(config.auth, signer),
        ledger=PointsLedgerGateway(
            store,
            unit_cost=config.metering.unit_cost,
            serialize_per_user=config.metering.serialize_per_user,
        ),
        providers=providers or ProviderRegistry.default(timeout_seconds=config.generation.timeout_seconds),
        wechat=wechat_client or WeChatClient(config.wechat),
        started_at=time.monotonic(),
    )


def _log_startup_warnings(config: Config) -> None:
    if not config.auth.admin_password:
        logger.warning("ADMIN_PASSWORD not set; admin methods will answer with a configuration error")
    if not config.auth.jwt_secret:
        logger.warning("JWT_SECRET not set; issued tokens will not survive a restart")
    if not config.wechat.configured:
        logger.warning(
            "WeChat configuration incomplete. Set WECHAT_APP_ID and WECHAT_APP_SECRET for WeChat login support"
        )


def _rate_limited(
    limiters: dict[str, RequestRateLimiter],
    namespace: RouteNamespace,
    client_host: str | None,
) -> JSONResponse | None:
    for scope in (RATE_LIMIT_SCOPE_GLOBAL, namespace.rate_limit_scope):
        if scope is None or scope not in limiters:
            continue
        check = limiters[scope].hit(client_host, scope)
        if not check.allowed:
            logger.warning("Rate limit ({}) exceeded for {} on {}", scope, client_host or "unknown", namespace.path)
            err = RateLimitError(_RATE_LIMIT_MESSAGES[scope], check.retry_after_ms)
            return JSONResponse(error_response(err.to_rpc_error(), None))
    return None


async def _read_body(request: Request, limit: int) -> bytes | None:
    """Read the request body, or None as soon as it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        return None
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            return None
    return bytes(body)


def create_app(
    config: Config | None = None,
    *,
    store: SqliteRecordStore | None = None,
    providers: ProviderRegistry | None = None,
    wechat_client: WeChatClient | None = None,
    rate_limit_clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Create the FastAPI application around an explicitly built configuration."""
    config = config or load_config()
    services = build_services(config, store=store, providers=providers, wechat_client=wechat_client)
    router = build_router()
    dispatcher = RpcDispatcher(router, services)
    limiters = build_rate_limiters(config.rate_limit, clock=rate_limit_clock) if config.rate_limit.enabled else {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting milobanana API server")
        _log_startup_warnings(config)
        await services.store.initialize()
        try:
            yield
        finally:
            await services.providers.aclose()
            logger.info("milobanana API server stopped")

    app = FastAPI(
        title="Milo Banana API",
        description="JSON-RPC 2.0 API for accounts, prompts and metered image generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.dispatcher = dispatcher

    origins = list(config.server.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Origin",
            "X-Requested-With",
            "Content-Type",
            "Accept",
            "Authorization",
            "Cache-Control",
            "X-HTTP-Method-Override",
        ],
        expose_headers=["Content-Range", "X-Content-Range"],
        max_age=86400,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on {}: {}", request.url.path, type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    max_body_bytes = config.server.max_body_bytes

    def _make_endpoint(namespace: RouteNamespace):
        async def endpoint(request: Request) -> JSONResponse:
            client_host = request.client.host if request.client else None
            limited = _rate_limited(limiters, namespace, client_host)
            if limited is not None:
                return limited

            raw = await _read_body(request, max_body_bytes)
            if raw is None:
                return JSONResponse(status_code=413, content={"error": "Request entity too large"})
            try:
                body: Any = json.loads(raw)
            except ValueError:
                return JSONResponse(error_response(ParseError().to_rpc_error(), None))

            reply = await dispatcher.dispatch(
                namespace.name,
                body,
                authorization=request.headers.get("authorization"),
                client_host=client_host,
            )
            return JSONResponse(reply.body, status_code=reply.status_code)

        endpoint.__name__ = f"rpc_{namespace.name}"
        return endpoint

    for namespace in router:
        app.add_api_route(namespace.path, _make_endpoint(namespace), methods=["POST"], name=namespace.name)

    return app


def run_server(config: Config, *, log_level: str = "warning") -> None:
    """Run the API server."""
    app = create_app(config)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level=log_level,
    )
