"""RPC handler for metered content generation."""

from __future__ import annotations

from typing import Any

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.api.rpc.params import GenerateParams
from milobanana.providers.base import GeneratedContent
from milobanana.utils.helpers import now_iso


async def handle_generate(ctx: RpcCallContext, params: GenerateParams) -> dict[str, Any]:
    services = ctx.services
    provider = services.providers.get(params.platform)
    parts = params.provider_parts()

    async def _generate() -> list[GeneratedContent]:
        settings = await services.store.get_generation_settings()
        return await provider.generate(parts, settings)

    results = await services.ledger.run_metered(ctx.principal, _generate)
    return {
        "platform": params.platform,
        "data": [item.to_dict() for item in results],
        "generated_at": now_iso(),
    }
