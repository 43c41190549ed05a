"""RPC handlers for the caller's profile and admin balance administration."""

from __future__ import annotations

from typing import Any

from loguru import logger

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.api.rpc.params import (
    AddPointsParams,
    SubtractPointsParams,
    UpdatePointsParams,
    UserIdParams,
)
from milobanana.auth.principal import UserPrincipal
from milobanana.storage.sqlite_store import SqliteRecordStore, UserRecord
from milobanana.utils.exceptions import AuthenticationError, NotFoundError


async def _require_user(store: SqliteRecordStore, user_id: int) -> UserRecord:
    user = await store.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def handle_profile(ctx: RpcCallContext, params: None) -> dict[str, Any]:
    principal = ctx.principal
    if not isinstance(principal, UserPrincipal):
        raise AuthenticationError("Authentication required")
    user = await _require_user(ctx.services.store, principal.user_id)
    return {"id": user.id, "username": user.username, "points": user.points}


async def handle_list_users(ctx: RpcCallContext, params: None) -> list[dict[str, Any]]:
    return await ctx.services.store.list_users()


async def handle_get_user(ctx: RpcCallContext, params: UserIdParams) -> dict[str, Any]:
    user = await _require_user(ctx.services.store, params.id)
    return user.public_dict()


async def handle_update_points(ctx: RpcCallContext, params: UpdatePointsParams) -> dict[str, Any]:
    store = ctx.services.store
    await _require_user(store, params.user_id)
    await store.update_points(params.user_id, params.points)
    user = await _require_user(store, params.user_id)
    logger.info("Admin set user {} points to {}", params.user_id, user.points)
    return {"message": "User points updated successfully", "user": user.public_dict()}


async def handle_add_points(ctx: RpcCallContext, params: AddPointsParams) -> dict[str, Any]:
    store = ctx.services.store
    new_points = await store.add_points(params.user_id, params.points)
    user = await _require_user(store, params.user_id)
    logger.info("Admin added {} points to user {}", params.points, params.user_id)
    return {
        "message": f"Added {params.points} points successfully",
        "user": user.public_dict(),
        "newPoints": new_points,
    }


async def handle_subtract_points(ctx: RpcCallContext, params: SubtractPointsParams) -> dict[str, Any]:
    store = ctx.services.store
    new_points = await store.subtract_points(params.user_id, params.points)
    user = await _require_user(store, params.user_id)
    logger.info("Admin subtracted {} points from user {}", params.points, params.user_id)
    return {
        "message": f"Subtracted {params.points} points successfully",
        "user": user.public_dict(),
        "newPoints": new_points,
    }
