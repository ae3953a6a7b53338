"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity
  2xxx: Account / Ledger
  3xxx: Catalog
  4xxx: Transfer / Orchestration
  9xxx: System

Every error carries a category that tells the caller what happened to state:
  validation / precondition / conflict  -> nothing changed
  partial_failure                       -> compensated, then reported
  infrastructure                        -> effect unknown or unfinished, retry with the same key
"""

from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    PRECONDITION = "PRECONDITION"
    CONFLICT = "CONFLICT"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    AUTH = "AUTH"
    SYSTEM = "SYSTEM"


class AppError(Exception):
    """Base application error."""

    category: ErrorCategory = ErrorCategory.SYSTEM
    retriable: bool = False

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Identity ---

class InvalidIdentityError(AppError):
    category = ErrorCategory.AUTH

    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired identity token", 401)


class AdminRequiredError(AppError):
    category = ErrorCategory.AUTH

    def __init__(self) -> None:
        super().__init__(1002, "Administrator privileges required", 403)


# --- 2xxx: Account / Ledger ---

class InsufficientFundsError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient balance: required {required} cents, available {available} cents",
            422,
        )


class AccountNotFoundError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


class InvalidAmountError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, detail: str = "Amount must be greater than zero") -> None:
        super().__init__(2003, detail, 422)


class TransferFailedError(AppError):
    """Credit leg failed after the debit applied; the debit was compensated."""

    category = ErrorCategory.PARTIAL_FAILURE

    def __init__(self, from_id: str, to_id: str, compensated: bool = True) -> None:
        self.compensated = compensated
        suffix = "" if compensated else " (compensation failed, pending reconciliation)"
        super().__init__(
            2004,
            f"Transfer from {from_id} to {to_id} could not be completed{suffix}",
            500,
        )


class SettlementPendingError(AppError):
    """Money moved but its bookkeeping is not finished; a replay with the same key completes it."""

    category = ErrorCategory.INFRASTRUCTURE
    retriable = True

    def __init__(self, operation_id: str | None) -> None:
        self.operation_id = operation_id
        super().__init__(
            2005,
            "Payment applied but not yet finalized, retry with the same idempotency key",
            503,
        )


# --- 3xxx: Catalog ---

class ListingNotFoundError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, listing_id: str) -> None:
        super().__init__(3001, f"Listing not found: {listing_id}", 404)


class ListingUnavailableError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, listing_id: str) -> None:
        super().__init__(3002, f"Listing is no longer available: {listing_id}", 422)


class ListingAlreadySoldError(AppError):
    """Lost the claim race on a listing; no money moved."""

    category = ErrorCategory.CONFLICT

    def __init__(self, listing_id: str) -> None:
        super().__init__(3003, f"Listing was already sold: {listing_id}", 409)


class ItemNotFoundError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, item_id: str) -> None:
        super().__init__(3004, f"Library item not found: {item_id}", 404)


class AlreadyPublishedError(AppError):
    category = ErrorCategory.CONFLICT

    def __init__(self, item_id: str) -> None:
        super().__init__(3005, f"Library item is already in the marketplace: {item_id}", 409)


class InvalidDurationError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, duration: object) -> None:
        super().__init__(
            3006,
            f"Invalid advertisement duration: {duration!r} (allowed: 3, 7, 14, 30 days)",
            422,
        )


class NotItemOwnerError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, item_id: str) -> None:
        super().__init__(3007, f"Library item {item_id} belongs to another user", 403)


class InvalidListingError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, detail: str) -> None:
        super().__init__(3008, f"Invalid listing: {detail}", 422)


# --- 4xxx: Transfer / Orchestration ---

class MalformedPayloadError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, detail: str = "not valid structured data") -> None:
        super().__init__(4001, f"Malformed transfer code: {detail}", 422)


class WrongPayloadKindError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, kind: object) -> None:
        super().__init__(4002, f"Not a wallet transfer code (kind={kind!r})", 422)


class RecipientNotFoundError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self, reference: str) -> None:
        super().__init__(4003, f"No recipient found for {reference}", 404)


class SelfTransferNotAllowedError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self) -> None:
        super().__init__(4004, "You cannot transfer funds to yourself", 422)


class SelfPurchaseNotAllowedError(AppError):
    category = ErrorCategory.PRECONDITION

    def __init__(self) -> None:
        super().__init__(4005, "You cannot buy your own book", 422)


class PurchaseFailedError(AppError):
    category = ErrorCategory.PARTIAL_FAILURE

    def __init__(self, listing_id: str) -> None:
        super().__init__(
            4006,
            f"Purchase of listing {listing_id} failed and was rolled back",
            500,
        )


class InvalidPhoneError(AppError):
    category = ErrorCategory.VALIDATION

    def __init__(self, phone: str) -> None:
        super().__init__(4007, f"Invalid phone number: {phone!r}", 422)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StoreUnavailableError(AppError):
    """Store unreachable or timed out. The underlying cause is chained, never shown."""

    category = ErrorCategory.INFRASTRUCTURE
    retriable = True

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            9003,
            "Service temporarily unavailable, please check your balance before retrying",
            503,
        )
