"""RPC handlers for the generation provider settings."""

from __future__ import annotations

from typing import Any

from loguru import logger

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.api.rpc.params import ConfigUpdateParams


async def handle_config_get(ctx: RpcCallContext, params: None) -> dict[str, str]:
    settings = await ctx.services.store.get_generation_settings()
    return settings.to_dict()


async def handle_config_update(ctx: RpcCallContext, params: ConfigUpdateParams) -> dict[str, Any]:
    store = ctx.services.store
    await store.update_generation_settings(
        base_url=params.base_url,
        api_key=params.api_key,
        model=params.model,
    )
    settings = await store.get_generation_settings()
    changed = [key for key, value in params.model_dump(by_alias=True).items() if value]
    logger.info("Generation settings updated: {}", ", ".join(changed))
    return {"message": "Configuration updated successfully", "config": settings.to_dict()}
