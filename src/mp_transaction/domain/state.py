"""Transaction state guards - pure functions, no I/O.

Each ``check_*`` inspects the current row and returns:
    True   the target state is already reached (replay: succeed without writing)
    False  the transition may be applied
or raises TransitionPreconditionError for an out-of-order transition.

The service calls a guard before its conditional UPDATE, and again on the
re-read row when the UPDATE matched nothing (a concurrent writer got there
first). If the second call still says "apply", the row moved under us in a
way the guard cannot explain and the service raises TransactionConflictError.

    PAYMENT_PENDING ──ship──▶ SHIPPED ──confirm──▶ COMPLETED
          │  ╲                   │
        cancel  ╲──dispute──▶ DISPUTED ◀──dispute──┘
          ▼                      │ admin resolve
      CANCELLED ◀────────────────┴──────────────▶ COMPLETED
"""

from src.mp_common.enums import TransactionStatus
from src.mp_common.errors import TransitionPreconditionError
from src.mp_transaction.domain.models import Transaction, TransactionCorrection

_PENDING = TransactionStatus.PAYMENT_PENDING.value
_SHIPPED = TransactionStatus.SHIPPED.value
_DISPUTED = TransactionStatus.DISPUTED.value
_COMPLETED = TransactionStatus.COMPLETED.value
_CANCELLED = TransactionStatus.CANCELLED.value


def _fail(tx: Transaction, message: str) -> TransitionPreconditionError:
    return TransitionPreconditionError(tx.id, message, tx.status)


def _reject_frozen(tx: Transaction, action: str) -> None:
    if tx.status == _DISPUTED:
        raise _fail(tx, f"Transaction is disputed; cannot {action} until an administrator resolves it")
    if tx.status == _CANCELLED:
        raise _fail(tx, f"Transaction is cancelled; cannot {action}")


def check_record_payment(tx: Transaction) -> bool:
    if tx.payment_cleared:
        return True
    _reject_frozen(tx, "record payment")
    if tx.status != _PENDING:
        raise _fail(tx, "Payment can only be recorded while the transaction awaits payment")
    return False


def check_record_shipment(tx: Transaction) -> bool:
    if tx.shipped_at is not None and tx.status in (_SHIPPED, _COMPLETED):
        return True
    _reject_frozen(tx, "ship")
    if tx.status != _PENDING:
        raise _fail(tx, "Transaction cannot be shipped from its current state")
    if not tx.payment_cleared:
        raise _fail(tx, "Payment must be verified before the item can be shipped")
    return False


def check_record_delivery(tx: Transaction) -> bool:
    if tx.delivered_at is not None:
        return True
    _reject_frozen(tx, "record delivery")
    if tx.status != _SHIPPED:
        raise _fail(tx, "Item has not been shipped")
    return False


def check_confirm_delivery(tx: Transaction) -> bool:
    if tx.status == _COMPLETED:
        return True
    _reject_frozen(tx, "confirm delivery")
    if tx.status != _SHIPPED:
        raise _fail(tx, "Item has not been shipped")
    if not tx.payment_cleared:
        raise _fail(tx, "Payment has not been verified")
    if tx.delivered_at is None:
        raise _fail(tx, "Delivery has not been recorded by the courier yet")
    return False


def check_file_dispute(tx: Transaction) -> bool:
    if tx.status == _DISPUTED:
        return True
    if tx.is_terminal:
        raise _fail(tx, f"A {tx.status.lower()} transaction cannot be disputed")
    return False


def check_cancel(tx: Transaction) -> bool:
    if tx.status == _CANCELLED:
        return True
    if tx.status != _PENDING:
        raise _fail(tx, "Only transactions awaiting payment can be cancelled")
    if tx.payment_cleared:
        raise _fail(tx, "Payment has already been received; file a dispute instead")
    return False


def check_resolve_dispute(tx: Transaction, outcome: str) -> bool:
    """Administrative override: DISPUTED -> COMPLETED | CANCELLED."""
    if tx.status == outcome and tx.disputed_at is not None:
        return True
    if tx.status != _DISPUTED:
        raise _fail(tx, "Only disputed transactions can be resolved")
    if outcome == _COMPLETED and not tx.payment_cleared:
        raise _fail(tx, "An unpaid transaction cannot be completed; cancel it instead")
    return False


def check_correction(tx: Transaction, correction: TransactionCorrection) -> bool:
    """Administrative correction of recorded fields.

    Cancelled sales are closed. The platform fee may only change while its
    ledger entry is still PENDING, i.e. before completion.
    """
    if not correction.changes(tx):
        return True
    if tx.status == _CANCELLED:
        raise _fail(tx, "A cancelled transaction cannot be corrected")
    if correction.changes_fee(tx) and tx.status == _COMPLETED:
        raise _fail(tx, "The platform fee of a completed transaction is settled")
    return False
