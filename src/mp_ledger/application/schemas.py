# src/mp_ledger/application/schemas.py
from datetime import datetime

from pydantic import BaseModel

from src.mp_common.cents import cents_to_display
from src.mp_common.response import PaginationMeta
from src.mp_ledger.domain.models import LedgerEntry, LedgerTotals


class LedgerEntryResponse(BaseModel):
    id: int
    entry_type: str
    status: str
    amount_cents: int
    amount_display: str
    platform_revenue_cents: int
    platform_revenue_display: str
    from_user_id: str | None
    to_user_id: str | None
    transaction_id: str | None
    description: str | None
    created_at: datetime | None
    status_changed_at: datetime | None

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            status=e.status,
            amount_cents=e.amount,
            amount_display=cents_to_display(e.amount),
            platform_revenue_cents=e.platform_revenue,
            platform_revenue_display=cents_to_display(e.platform_revenue),
            from_user_id=e.from_user_id,
            to_user_id=e.to_user_id,
            transaction_id=e.transaction_id,
            description=e.description,
            created_at=e.created_at,
            status_changed_at=e.status_changed_at,
        )


class LedgerTotalsResponse(BaseModel):
    """Totals over COMPLETED entries only (recognised amounts)."""

    entry_count: int
    total_amount_cents: int
    total_amount_display: str
    total_platform_revenue_cents: int
    total_platform_revenue_display: str

    @classmethod
    def from_domain(cls, t: LedgerTotals) -> "LedgerTotalsResponse":
        return cls(
            entry_count=t.entry_count,
            total_amount_cents=t.total_amount,
            total_amount_display=cents_to_display(t.total_amount),
            total_platform_revenue_cents=t.total_platform_revenue,
            total_platform_revenue_display=cents_to_display(t.total_platform_revenue),
        )


class LedgerPageResponse(BaseModel):
    items: list[LedgerEntryResponse]
    totals: LedgerTotalsResponse
    pagination: PaginationMeta
