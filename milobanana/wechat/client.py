"""WeChat login endpoints: mini-program session and OAuth web/app exchange."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from milobanana.config.schema import WeChatConfig
from milobanana.utils.exceptions import WeChatAPIError

MINIPROGRAM_PLATFORM = "miniprogram"


@dataclass
class WeChatSession:
    """Result of a code exchange. ``errcode`` is set when WeChat rejected the code."""
    openid: str | None = None
    unionid: str | None = None
    access_token: str | None = None
    session_key: str | None = None
    errcode: int | None = None
    errmsg: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WeChatSession":
        return cls(
            openid=payload.get("openid") or None,
            unionid=payload.get("unionid") or None,
            access_token=payload.get("access_token") or None,
            session_key=payload.get("session_key") or None,
            errcode=payload.get("errcode") or None,
            errmsg=payload.get("errmsg") or None,
        )


@dataclass
class WeChatProfile:
    nickname: str | None = None
    avatar_url: str | None = None
    errcode: int | None = None


class WeChatClient:
    """Plain outbound calls to api.weixin.qq.com; no retries."""

    def __init__(
        self,
        config: WeChatConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.config.configured

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        url = f"{self.config.api_base.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                # jscode2session answers with text/plain, so parse the body directly.
                data = resp.json()
        except httpx.HTTPStatusError as e:
            # The request URL carries the app secret; report the status only.
            raise WeChatAPIError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise WeChatAPIError(type(e).__name__) from e
        if not isinstance(data, dict):
            raise WeChatAPIError("unexpected response shape")
        return data

    async def exchange_code(self, code: str, platform: str = MINIPROGRAM_PLATFORM) -> WeChatSession:
        """Exchange a login code for an openid (and, for OAuth platforms, an access token)."""
        if platform == MINIPROGRAM_PLATFORM:
            path = "/sns/jscode2session"
            params = {
                "appid": self.config.app_id,
                "secret": self.config.app_secret,
                "js_code": code,
                "grant_type": "authorization_code",
            }
        else:
            path = "/sns/oauth2/access_token"
            params = {
                "appid": self.config.app_id,
                "secret": self.config.app_secret,
                "code": code,
                "grant_type": "authorization_code",
            }
        payload = await self._get_json(path, params)
        session = WeChatSession.from_payload(payload)
        if session.errcode:
            logger.info("WeChat rejected {} code: errcode={} errmsg={}", platform, session.errcode, session.errmsg)
        return session

    async def fetch_profile(self, access_token: str, openid: str) -> WeChatProfile:
        payload = await self._get_json(
            "/sns/userinfo",
            {"access_token": access_token, "openid": openid, "lang": "zh_CN"},
        )
        return WeChatProfile(
            nickname=payload.get("nickname") or None,
            avatar_url=payload.get("headimgurl") or None,
            errcode=payload.get("errcode") or None,
        )
