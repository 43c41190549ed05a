import asyncio

import pytest

from milobanana.auth.principal import ADMIN, ANONYMOUS, UserPrincipal
from milobanana.metering.ledger import PointsLedgerGateway
from milobanana.storage.sqlite_store import UserRecord
from milobanana.utils.exceptions import (
    AuthenticationError,
    InsufficientBalanceError,
    MiloBananaError,
    RpcErrorCode,
)


class _Store:
    def __init__(self, points: dict[int, int]):
        self.points = dict(points)
        self.subtract_calls = []

    async def get_user_by_id(self, user_id):
        if user_id not in self.points:
            return None
        return UserRecord(id=user_id, username=f"u{user_id}", password="x", points=self.points[user_id])

    async def subtract_points(self, user_id, delta):
        self.subtract_calls.append((user_id, delta))
        await asyncio.sleep(0)
        self.points[user_id] = max(0, self.points[user_id] - delta)
        return self.points[user_id]


USER = UserPrincipal(1, "u1")


@pytest.mark.asyncio
async def test_charges_once_on_success():
    store = _Store({1: 5})
    ledger = PointsLedgerGateway(store)

    async def op():
        return "image"

    assert await ledger.run_metered(USER, op) == "image"
    assert store.points[1] == 4
    assert store.subtract_calls == [(1, 1)]


@pytest.mark.asyncio
async def test_no_charge_when_operation_fails():
    store = _Store({1: 5})
    ledger = PointsLedgerGateway(store)

    async def op():
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        await ledger.run_metered(USER, op)
    assert store.points[1] == 5
    assert store.subtract_calls == []


@pytest.mark.asyncio
async def test_zero_balance_refused_before_operation():
    store = _Store({1: 0})
    ledger = PointsLedgerGateway(store)
    calls = []

    async def op():
        calls.append(1)

    with pytest.raises(InsufficientBalanceError) as exc:
        await ledger.run_metered(USER, op)
    assert exc.value.data == {"currentPoints": 0, "requiredPoints": 1}
    assert calls == []
    assert store.subtract_calls == []


@pytest.mark.asyncio
async def test_missing_user_is_internal_error():
    ledger = PointsLedgerGateway(_Store({}))

    async def op():
        return None

    with pytest.raises(MiloBananaError) as exc:
        await ledger.run_metered(USER, op)
    assert exc.value.code is RpcErrorCode.INTERNAL_ERROR
    assert exc.value.message == "User not found"


@pytest.mark.asyncio
@pytest.mark.parametrize("principal", [ADMIN, ANONYMOUS])
async def test_only_users_are_metered(principal):
    ledger = PointsLedgerGateway(_Store({1: 5}))

    async def op():
        return None

    with pytest.raises(AuthenticationError):
        await ledger.run_metered(principal, op)


@pytest.mark.asyncio
async def test_per_user_serialization_prevents_overdraw_race():
    store = _Store({1: 1})
    ledger = PointsLedgerGateway(store, serialize_per_user=True)

    async def op():
        await asyncio.sleep(0.01)
        return "ok"

    results = await asyncio.gather(
        ledger.run_metered(USER, op),
        ledger.run_metered(USER, op),
        return_exceptions=True,
    )
    assert sorted(type(r).__name__ for r in results) == ["InsufficientBalanceError", "str"]
    assert store.subtract_calls == [(1, 1)]


@pytest.mark.asyncio
async def test_without_serialization_both_calls_pass_the_check():
    store = _Store({1: 1})
    ledger = PointsLedgerGateway(store, serialize_per_user=False)

    async def op():
        await asyncio.sleep(0.01)
        return "ok"

    results = await asyncio.gather(ledger.run_metered(USER, op), ledger.run_metered(USER, op))
    assert results == ["ok", "ok"]
    assert store.points[1] == 0


def test_unit_cost_must_be_positive():
    with pytest.raises(ValueError):
        PointsLedgerGateway(_Store({}), unit_cost=0)


@pytest.mark.asyncio
async def test_user_locks_are_released_after_calls():
    store = _Store({uid: 5 for uid in range(1, 201)})
    ledger = PointsLedgerGateway(store)

    async def op():
        await asyncio.sleep(0)
        return "ok"

    async def failing_op():
        raise RuntimeError("provider down")

    for uid in range(1, 201):
        assert await ledger.run_metered(UserPrincipal(uid, f"u{uid}"), op) == "ok"
    with pytest.raises(RuntimeError):
        await ledger.run_metered(USER, failing_op)
    await asyncio.gather(*(ledger.run_metered(USER, op) for _ in range(3)))
    assert ledger.lock_count() == 0
