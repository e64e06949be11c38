"""Domain models for mp_ledger - pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import LedgerEntryStatus


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    entry_type: str                  # LedgerEntryType value
    status: str                      # LedgerEntryStatus value
    amount: int                      # cents, always >= 0
    platform_revenue: int            # cents, negative for platform-absorbed costs
    from_user_id: str | None = None
    to_user_id: str | None = None
    transaction_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    status_changed_at: datetime | None = None


@dataclass(frozen=True)
class NewLedgerEntry:
    """Insert payload; financial fields are fixed at creation."""

    entry_type: str
    amount: int
    status: str = LedgerEntryStatus.PENDING.value
    platform_revenue: int = 0
    from_user_id: str | None = None
    to_user_id: str | None = None
    transaction_id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class LedgerFilter:
    entry_type: str | None = None
    status: str | None = None
    from_user_id: str | None = None
    to_user_id: str | None = None
    transaction_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass
class LedgerTotals:
    entry_count: int
    total_amount: int
    total_platform_revenue: int
