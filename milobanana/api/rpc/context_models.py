"""Shared dataclass models for RPC dispatch context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from milobanana.auth.passwords import PasswordHasher
from milobanana.auth.principal import Principal, PrincipalResolver
from milobanana.auth.tokens import TokenSigner
from milobanana.config.schema import Config
from milobanana.metering.ledger import PointsLedgerGateway
from milobanana.providers.registry import ProviderRegistry
from milobanana.storage.sqlite_store import SqliteRecordStore
from milobanana.wechat.client import WeChatClient


@dataclass(slots=True)
class RpcServices:
    """Process-wide collaborators, built once at startup and shared by every request."""

    config: Config
    store: SqliteRecordStore
    signer: TokenSigner
    hasher: PasswordHasher
    resolver: PrincipalResolver
    ledger: PointsLedgerGateway
    providers: ProviderRegistry
    wechat: WeChatClient
    started_at: float


@dataclass(slots=True)
class RpcCallContext:
    """Request-scoped values handed to a method handler."""

    method: str
    request_id: Any
    principal: Principal
    services: RpcServices
    client_host: str | None = None
