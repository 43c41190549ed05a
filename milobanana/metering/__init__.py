"""Per-user points metering."""

from milobanana.metering.ledger import BalanceStore, PointsLedgerGateway

__all__ = ["BalanceStore", "PointsLedgerGateway"]
