"""Unit tests for error codes and response wrappers."""

from src.mp_common.errors import (
    AppError,
    InternalError,
    ListingUnavailableError,
    OfferBelowMinimumError,
    OfferNotPendingError,
    TransactionConflictError,
    TransitionPreconditionError,
)
from src.mp_common.response import error_response, success_response


def test_validation_error_maps_to_400() -> None:
    err = OfferBelowMinimumError(4_000, 5_000)
    assert isinstance(err, AppError)
    assert err.http_status == 400
    assert err.code == 3002
    assert err.details == {"amount_cents": 4_000, "minimum_cents": 5_000}


def test_conflicts_map_to_409() -> None:
    assert ListingUnavailableError("L1", "SOLD").http_status == 409
    assert OfferNotPendingError("O1", "EXPIRED").http_status == 409
    assert TransactionConflictError("T1", "CANCELLED").http_status == 409
    err = TransitionPreconditionError("T1", "Item has not been shipped", "PAYMENT_PENDING")
    assert err.http_status == 409


def test_offer_not_pending_message_uses_status() -> None:
    err = OfferNotPendingError("O1", "EXPIRED")
    assert err.message == "Offer is already expired"


def test_internal_error_does_not_leak() -> None:
    err = InternalError()
    assert err.http_status == 500
    assert err.message == "Internal server error"


def test_success_response_keeps_request_id() -> None:
    resp = success_response({"a": 1}, "req_abc")
    assert resp.data == {"a": 1}
    assert resp.request_id == "req_abc"


def test_success_response_generates_request_id() -> None:
    resp = success_response(None)
    assert resp.request_id.startswith("req_")


def test_error_response_shape() -> None:
    resp = error_response(2002, "Listing L1 is not available", {"status": "SOLD"}, "req_x")
    assert resp.model_dump() == {
        "error": "Listing L1 is not available",
        "code": 2002,
        "details": {"status": "SOLD"},
        "request_id": "req_x",
    }
