"""RPC handlers for login, signup and WeChat login."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.api.rpc.params import LoginParams, SignupParams, WeChatLoginParams
from milobanana.auth.tokens import TokenPayload
from milobanana.storage.sqlite_store import UserRecord
from milobanana.utils.exceptions import (
    AuthenticationError,
    MiloBananaError,
    ValidationError,
    WeChatAPIError,
)
from milobanana.wechat.client import MINIPROGRAM_PLATFORM


def _token_fields(ctx: RpcCallContext, user: UserRecord) -> dict[str, Any]:
    signer = ctx.services.signer
    return {
        "access_token": signer.sign(TokenPayload(user_id=user.id, username=user.username)),
        "token_type": "Bearer",
        "expires_in": signer.ttl_seconds,
    }


async def handle_login(ctx: RpcCallContext, params: LoginParams) -> dict[str, Any]:
    """OAuth2-style password grant. Unknown user and bad password look the same to the caller."""
    services = ctx.services
    user = await services.store.get_user_by_username(params.username)
    valid = user is not None and await asyncio.to_thread(services.hasher.compare, params.password, user.password)
    if not valid:
        logger.info("Failed login for username={!r} from {}", params.username, ctx.client_host or "unknown")
        raise AuthenticationError("Invalid username or password", {"error": "invalid_grant"})
    return {**_token_fields(ctx, user), "scope": "read write"}


async def handle_signup(ctx: RpcCallContext, params: SignupParams) -> dict[str, Any]:
    services = ctx.services
    if await services.store.get_user_by_username(params.username) is not None:
        raise ValidationError("Username already exists", {"conflict": True})

    digest = await asyncio.to_thread(services.hasher.hash, params.password)
    user_id = await services.store.create_user(params.username, digest, params.nickname)
    user = await services.store.get_user_by_id(user_id)
    if user is None:
        raise MiloBananaError("Failed to retrieve created user")
    logger.info("Created user {} ({})", user.id, user.username)
    return {
        "message": "User created successfully",
        "user": {
            "id": user.id,
            "username": user.username,
            "nickname": user.nickname,
            "points": user.points,
        },
        **_token_fields(ctx, user),
    }


async def handle_wechat_login(ctx: RpcCallContext, params: WeChatLoginParams) -> dict[str, Any]:
    services = ctx.services
    wechat = services.wechat
    if not wechat.configured:
        raise MiloBananaError(
            "WeChat service not configured. Please set WeChat credentials in environment variables"
        )

    platform = params.platform or MINIPROGRAM_PLATFORM
    session = await wechat.exchange_code(params.code, platform)
    if session.errcode:
        raise AuthenticationError(
            f"WeChat authentication failed: {session.errmsg or 'Unknown error'}",
            {
                "error": "wechat_auth_failed",
                "wechat_error_code": session.errcode,
                "wechat_error_msg": session.errmsg,
            },
        )
    if not session.openid:
        raise AuthenticationError("WeChat openid not received", {"error": "invalid_wechat_response"})

    user = await services.store.get_user_by_wechat_openid(session.openid)
    is_new_user = False
    if user is None:
        nickname, avatar_url = params.profile_hint()
        if session.access_token:
            try:
                profile = await wechat.fetch_profile(session.access_token, session.openid)
            except WeChatAPIError as e:
                logger.warning("Failed to fetch WeChat profile for new user: {}", e.message)
            else:
                if not profile.errcode:
                    nickname = nickname or profile.nickname
                    avatar_url = avatar_url or profile.avatar_url
        user_id = await services.store.create_wechat_user(
            session.openid,
            unionid=session.unionid,
            avatar_url=avatar_url,
            nickname=nickname,
        )
        user = await services.store.get_user_by_id(user_id)
        if user is None:
            raise MiloBananaError("Failed to create WeChat user")
        is_new_user = True
        logger.info("Created WeChat user {} via {}", user.id, platform)

    return {
        **_token_fields(ctx, user),
        "user": user.public_dict(),
        "is_new_user": is_new_user,
    }
