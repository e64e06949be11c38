"""Unit tests for transaction state guards (pure functions)."""

from datetime import UTC, datetime

import pytest

from src.mp_common.errors import TransitionPreconditionError
from src.mp_transaction.domain import state
from src.mp_transaction.domain.models import Transaction, TransactionCorrection

NOW = datetime(2026, 10, 19, tzinfo=UTC)


def _tx(**kwargs) -> Transaction:
    defaults = dict(
        id="tx-1", transaction_type="OFFER", listing_id="lst-1", seller_id="seller",
        buyer_id="buyer", offer_id="off-1", item_price=200_000, shipping_cost=0,
        total_amount=200_000, platform_fee=11_000, seller_payout=189_000,
        fee_rate_bps=550, settings_version=1, escrow_release_days=2,
    )
    defaults.update(kwargs)
    return Transaction(**defaults)


def _paid(**kwargs) -> Transaction:
    return _tx(**{**dict(payment_status="HELD_ESCROW", paid_at=NOW), **kwargs})


def _shipped(**kwargs) -> Transaction:
    return _paid(**{**dict(status="SHIPPED", delivery_status="SHIPPED", shipped_at=NOW), **kwargs})


class TestRecordPayment:
    def test_pending_may_pay(self) -> None:
        assert state.check_record_payment(_tx()) is False

    def test_paid_is_replay(self) -> None:
        assert state.check_record_payment(_paid()) is True

    def test_cancelled_rejected(self) -> None:
        with pytest.raises(TransitionPreconditionError):
            state.check_record_payment(_tx(status="CANCELLED"))


class TestShipment:
    def test_unpaid_cannot_ship(self) -> None:
        with pytest.raises(TransitionPreconditionError, match="Payment must be verified"):
            state.check_record_shipment(_tx())

    def test_paid_may_ship(self) -> None:
        assert state.check_record_shipment(_paid()) is False

    def test_shipped_is_replay(self) -> None:
        assert state.check_record_shipment(_shipped()) is True

    def test_disputed_frozen(self) -> None:
        with pytest.raises(TransitionPreconditionError, match="disputed"):
            state.check_record_shipment(_paid(status="DISPUTED"))


class TestDelivery:
    def test_courier_signal_requires_shipment(self) -> None:
        with pytest.raises(TransitionPreconditionError):
            state.check_record_delivery(_paid())

    def test_courier_signal_applies_once(self) -> None:
        assert state.check_record_delivery(_shipped()) is False
        assert state.check_record_delivery(_shipped(delivered_at=NOW)) is True

    def test_confirm_requires_courier_delivery(self) -> None:
        with pytest.raises(TransitionPreconditionError, match="courier"):
            state.check_confirm_delivery(_shipped())

    def test_confirm_after_delivery(self) -> None:
        assert state.check_confirm_delivery(_shipped(delivered_at=NOW)) is False

    def test_confirm_completed_is_replay(self) -> None:
        assert state.check_confirm_delivery(_shipped(status="COMPLETED", delivered_at=NOW)) is True

    def test_confirm_unshipped_rejected(self) -> None:
        with pytest.raises(TransitionPreconditionError, match="not been shipped"):
            state.check_confirm_delivery(_paid())


class TestDisputeAndCancel:
    @pytest.mark.parametrize("status", ["PAYMENT_PENDING", "SHIPPED"])
    def test_open_states_may_be_disputed(self, status: str) -> None:
        assert state.check_file_dispute(_tx(status=status)) is False

    def test_disputed_is_replay(self) -> None:
        assert state.check_file_dispute(_tx(status="DISPUTED")) is True

    @pytest.mark.parametrize("status", ["COMPLETED", "CANCELLED"])
    def test_terminal_cannot_be_disputed(self, status: str) -> None:
        with pytest.raises(TransitionPreconditionError):
            state.check_file_dispute(_tx(status=status))

    def test_cancel_before_payment(self) -> None:
        assert state.check_cancel(_tx()) is False
        assert state.check_cancel(_tx(status="CANCELLED")) is True

    def test_cancel_after_payment_rejected(self) -> None:
        with pytest.raises(TransitionPreconditionError, match="dispute"):
            state.check_cancel(_paid())

    def test_cancel_after_shipment_rejected(self) -> None:
        with pytest.raises(TransitionPreconditionError):
            state.check_cancel(_shipped())


class TestResolveDispute:
    def test_disputed_may_resolve_either_way(self) -> None:
        tx = _paid(status="DISPUTED", disputed_at=NOW)
        assert state.check_resolve_dispute(tx, "COMPLETED") is False
        assert state.check_resolve_dispute(tx, "CANCELLED") is False

    def test_same_outcome_is_replay(self) -> None:
        tx = _paid(status="CANCELLED", disputed_at=NOW)
        assert state.check_resolve_dispute(tx, "CANCELLED") is True

    def test_other_outcome_after_resolution_rejected(self) -> None:
        tx = _paid(status="CANCELLED", disputed_at=NOW)
        with pytest.raises(TransitionPreconditionError):
            state.check_resolve_dispute(tx, "COMPLETED")

    def test_unpaid_cannot_be_completed(self) -> None:
        tx = _tx(status="DISPUTED", disputed_at=NOW)
        with pytest.raises(TransitionPreconditionError, match="unpaid"):
            state.check_resolve_dispute(tx, "COMPLETED")

    def test_undisputed_cannot_be_resolved(self) -> None:
        with pytest.raises(TransitionPreconditionError):
            state.check_resolve_dispute(_shipped(), "COMPLETED")


class TestCorrection:
    def test_fee_change_before_completion(self) -> None:
        fix = TransactionCorrection(note="wrong rate", platform_fee=10_000)
        assert state.check_correction(_shipped(), fix) is False

    def test_values_already_present_is_replay(self) -> None:
        fix = TransactionCorrection(note="again", platform_fee=11_000, tracking_number="TRK1")
        assert state.check_correction(_shipped(tracking_number="TRK1"), fix) is True

    def test_completed_fee_is_settled(self) -> None:
        fix = TransactionCorrection(note="late", platform_fee=10_000)
        with pytest.raises(TransitionPreconditionError, match="settled"):
            state.check_correction(_shipped(status="COMPLETED"), fix)

    def test_completed_tracking_may_still_be_fixed(self) -> None:
        fix = TransactionCorrection(note="typo", tracking_number="TRK2")
        assert state.check_correction(_shipped(status="COMPLETED", tracking_number="TRK1"), fix) is False

    def test_cancelled_is_closed(self) -> None:
        fix = TransactionCorrection(note="ref", payment_ref="EFT-9")
        with pytest.raises(TransitionPreconditionError, match="cancelled"):
            state.check_correction(_tx(status="CANCELLED"), fix)
