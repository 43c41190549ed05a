"""Points ledger gateway: balance pre-check, then charge only on success."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Protocol, TypeVar

from loguru import logger

from milobanana.auth.principal import Principal, UserPrincipal
from milobanana.storage.sqlite_store import UserRecord
from milobanana.utils.exceptions import (
    AuthenticationError,
    InsufficientBalanceError,
    MiloBananaError,
    RpcErrorCode,
)

T = TypeVar("T")


class BalanceStore(Protocol):
    async def get_user_by_id(self, user_id: int) -> UserRecord | None: ...

    async def subtract_points(self, user_id: int, delta: int) -> int: ...


class PointsLedgerGateway:
    """Wraps the metered method family.

    A user is charged ``unit_cost`` if and only if the wrapped operation
    returned normally. With ``serialize_per_user`` the check-then-charge
    sequence for one user id runs under an ``asyncio.Lock``, so two
    concurrent calls cannot both pass the balance check on the last point.
    """

    def __init__(self, store: BalanceStore, *, unit_cost: int = 1, serialize_per_user: bool = True):
        if unit_cost < 1:
            raise ValueError("unit_cost must be positive")
        self._store = store
        self.unit_cost = unit_cost
        self.serialize_per_user = serialize_per_user
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}

    @asynccontextmanager
    async def _user_guard(self, user_id: int) -> AsyncIterator[None]:
        if not self.serialize_per_user:
            yield
            return
        # Entries live only while a call for that user holds or awaits the lock.
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users.pop(user_id) - 1
            if remaining:
                self._lock_users[user_id] = remaining
            else:
                del self._locks[user_id]

    def lock_count(self) -> int:
        return len(self._locks)

    async def run_metered(self, principal: Principal, operation: Callable[[], Awaitable[T]]) -> T:
        if not isinstance(principal, UserPrincipal):
            raise AuthenticationError("Metered methods require a signed-in user", http_status=401)
        user_id = principal.user_id
        async with self._user_guard(user_id):
            user = await self._store.get_user_by_id(user_id)
            if user is None:
                raise MiloBananaError("User not found", code=RpcErrorCode.INTERNAL_ERROR)
            if user.points <= 0:
                raise InsufficientBalanceError(user.points, self.unit_cost)

            result = await operation()

            balance = await self._store.subtract_points(user_id, self.unit_cost)
            logger.info("Charged user {} {} point(s); balance now {}", user_id, self.unit_cost, balance)
            return result
