"""RPC handlers for the prompt catalog."""

from __future__ import annotations

from typing import Any

from loguru import logger

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.api.rpc.params import PromptCreateParams, PromptIdParams, PromptUpdateParams
from milobanana.storage.sqlite_store import PromptRecord, SqliteRecordStore
from milobanana.utils.exceptions import MiloBananaError, NotFoundError


async def _require_prompt(store: SqliteRecordStore, prompt_id: int) -> PromptRecord:
    prompt = await store.get_prompt(prompt_id)
    if prompt is None:
        raise NotFoundError("Prompt", prompt_id)
    return prompt


async def handle_list_prompts(ctx: RpcCallContext, params: None) -> list[dict[str, Any]]:
    return [p.to_dict() for p in await ctx.services.store.list_prompts()]


async def handle_get_prompt(ctx: RpcCallContext, params: PromptIdParams) -> dict[str, Any]:
    prompt = await _require_prompt(ctx.services.store, params.id)
    return prompt.to_dict()


async def handle_create_prompt(ctx: RpcCallContext, params: PromptCreateParams) -> dict[str, Any]:
    store = ctx.services.store
    prompt_id = await store.create_prompt(params.record_fields())
    prompt = await store.get_prompt(prompt_id)
    if prompt is None:
        raise MiloBananaError("Failed to retrieve created prompt")
    logger.info("Created prompt {} ({})", prompt.id, prompt.title)
    return {"message": "Prompt created successfully", "prompt": prompt.to_dict()}


async def handle_update_prompt(ctx: RpcCallContext, params: PromptUpdateParams) -> dict[str, Any]:
    store = ctx.services.store
    await _require_prompt(store, params.id)
    await store.update_prompt(params.id, params.record_fields())
    prompt = await _require_prompt(store, params.id)
    return {"message": "Prompt updated successfully", "prompt": prompt.to_dict()}


async def handle_delete_prompt(ctx: RpcCallContext, params: PromptIdParams) -> dict[str, str]:
    store = ctx.services.store
    await _require_prompt(store, params.id)
    await store.delete_prompt(params.id)
    logger.info("Deleted prompt {}", params.id)
    return {"message": "Prompt deleted successfully"}
