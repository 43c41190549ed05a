"""Pytest fixtures: isolated config, a temp SQLite store and fake collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from milobanana.api.rpc.context_models import RpcServices
from milobanana.api.server import build_services
from milobanana.config.schema import Config
from milobanana.providers.base import GeneratedContent, GenerationProvider
from milobanana.providers.openai_provider import OpenAIProvider
from milobanana.providers.registry import ProviderRegistry
from milobanana.storage.sqlite_store import GenerationSettings, SqliteRecordStore
from milobanana.wechat.client import WeChatProfile, WeChatSession

ADMIN_SECRET = "admin-secret-for-tests"
JWT_SECRET = "jwt-secret-for-tests-0123456789"


class FakeProvider(GenerationProvider):
    platform = "gemini"

    def __init__(self, *, fail: Exception | None = None, results: list[GeneratedContent] | None = None):
        self.fail = fail
        self.results = results if results is not None else [GeneratedContent(text="a banana")]
        self.calls: list[tuple[list[dict[str, Any]], GenerationSettings]] = []

    async def generate(self, parts, settings):
        self.calls.append((parts, settings))
        if self.fail is not None:
            raise self.fail
        return self.results


class FakeWeChat:
    def __init__(
        self,
        *,
        session: WeChatSession | None = None,
        profile: WeChatProfile | None = None,
        configured: bool = True,
    ):
        self.session = session or WeChatSession(openid="openid-1234567890abcdef")
        self.profile = profile or WeChatProfile()
        self.configured = configured
        self.exchanges: list[tuple[str, str]] = []
        self.profile_calls = 0

    async def exchange_code(self, code: str, platform: str = "miniprogram") -> WeChatSession:
        self.exchanges.append((code, platform))
        return self.session

    async def fetch_profile(self, access_token: str, openid: str) -> WeChatProfile:
        self.profile_calls += 1
        return self.profile


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config()
    cfg.auth.admin_password = ADMIN_SECRET
    cfg.auth.jwt_secret = JWT_SECRET
    cfg.auth.bcrypt_rounds = 4
    cfg.storage.db_path = str(tmp_path / "db" / "test.sqlite")
    cfg.storage.prompt_seed_path = ""
    cfg.rate_limit.enabled = False
    return cfg


@pytest.fixture
def store(config: Config) -> SqliteRecordStore:
    """Uninitialized store; async tests call ``await store.initialize()``."""
    return SqliteRecordStore(
        Path(config.storage.db_path),
        default_points=config.storage.default_points,
        default_generation=config.generation,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fake_wechat() -> FakeWeChat:
    return FakeWeChat()


@pytest.fixture
def services(config: Config, store: SqliteRecordStore, fake_provider: FakeProvider, fake_wechat: FakeWeChat) -> RpcServices:
    providers = ProviderRegistry({"gemini": fake_provider, "openai": OpenAIProvider()})
    return build_services(config, store=store, providers=providers, wechat_client=fake_wechat)


def admin_header() -> str:
    return f"Bearer {ADMIN_SECRET}"
