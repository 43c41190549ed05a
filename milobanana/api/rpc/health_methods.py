"""RPC handler for the liveness check."""

from __future__ import annotations

import time
from typing import Any

from milobanana.api.rpc.context_models import RpcCallContext
from milobanana.utils.helpers import now_iso


async def handle_health_check(ctx: RpcCallContext, params: None) -> dict[str, Any]:
    return {
        "status": "OK",
        "timestamp": now_iso(),
        "uptime": round(time.monotonic() - ctx.services.started_at, 3),
    }
