"""Unified error codes and custom exceptions.

Error classes map 1:1 to HTTP statuses:
  ValidationError     400  malformed / out-of-range input
  AuthenticationError 401  missing or invalid credentials
  AuthorizationError  403  actor lacks rights over the resource
  NotFoundError       404
  ConflictError       409  wrong current status (lost a race, already terminal)
  PreconditionError   409  transition attempted before its prerequisite
  InternalError       500  generic, never leaks internal state

Error code ranges:
  1xxx: Auth/User
  2xxx: Listing
  3xxx: Offer
  4xxx: Transaction
  5xxx: Ledger / Settings
  9xxx: System
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        details: Any = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, code: int, message: str, details: Any = None) -> None:
        super().__init__(code, message, 400, details)


class AuthenticationError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 401)


class AuthorizationError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 403)


class NotFoundError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):
    def __init__(self, code: int, message: str, details: Any = None) -> None:
        super().__init__(code, message, 409, details)


class PreconditionError(AppError):
    def __init__(self, code: int, message: str, details: Any = None) -> None:
        super().__init__(code, message, 409, details)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token")


class AccountDisabledError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1002, "Account is disabled")


class AdminRequiredError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1003, "Administrator privileges required")


# --- 2xxx: Listing ---

class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2001, f"Listing not found: {listing_id}")


class ListingUnavailableError(ConflictError):
    def __init__(self, listing_id: str, status: str) -> None:
        super().__init__(
            2002,
            f"Listing {listing_id} is not available (status={status})",
            {"listing_id": listing_id, "status": status},
        )


class NotListingSellerError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(2003, "Only the listing's seller may perform this action")


class UnpricedListingError(ValidationError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(
            2004,
            "This listing has no asking price; make an offer instead",
            {"listing_id": listing_id},
        )


# --- 3xxx: Offer ---

class OfferNotFoundError(NotFoundError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3001, f"Offer not found: {offer_id}")


class OfferBelowMinimumError(ValidationError):
    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(
            3002,
            "Offer must be at least 50% of the asking price",
            {"amount_cents": amount, "minimum_cents": minimum},
        )


class SelfOfferError(ValidationError):
    def __init__(self) -> None:
        super().__init__(3003, "You cannot make an offer on your own listing")


class OfferNotPendingError(ConflictError):
    def __init__(self, offer_id: str, status: str) -> None:
        super().__init__(
            3004,
            f"Offer is already {status.lower()}",
            {"offer_id": offer_id, "status": status},
        )


class InvalidOfferAmountError(ValidationError):
    def __init__(self, amount: int) -> None:
        super().__init__(3005, "A positive offer amount is required", {"amount_cents": amount})


class NotOfferParticipantError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(3006, "Only the buyer or the listing's seller may view this offer")


# --- 4xxx: Transaction ---

class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4001, f"Transaction not found: {transaction_id}")


class NotTransactionSellerError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(4002, "Only the seller may perform this action")


class NotTransactionBuyerError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(4003, "Only the buyer may perform this action")


class NotTransactionParticipantError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(4004, "Only the buyer or seller may access this transaction")


class TransitionPreconditionError(PreconditionError):
    def __init__(self, transaction_id: str, message: str, status: str) -> None:
        super().__init__(
            4005,
            message,
            {"transaction_id": transaction_id, "status": status},
        )


class TransactionConflictError(ConflictError):
    def __init__(self, transaction_id: str, status: str) -> None:
        super().__init__(
            4006,
            f"Transaction {transaction_id} changed concurrently (status={status})",
            {"transaction_id": transaction_id, "status": status},
        )


class SelfPurchaseError(ValidationError):
    def __init__(self) -> None:
        super().__init__(4007, "You cannot buy your own listing")


class InvalidCorrectionError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(4008, message)


# --- 5xxx: Ledger / Settings ---

class InvalidLedgerTransitionError(ConflictError):
    def __init__(self, entry_id: int, status: str) -> None:
        super().__init__(
            5001,
            f"Ledger entry {entry_id} is {status}; only PENDING entries may change status",
        )


class InvalidSettingsError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(5002, message)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
