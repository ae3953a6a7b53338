"""Tests for bw_common.errors and bw_common.response."""

from src.bw_common.errors import (
    AccountNotFoundError,
    AppError,
    ErrorCategory,
    InsufficientFundsError,
    InvalidDurationError,
    ListingAlreadySoldError,
    PurchaseFailedError,
    SelfTransferNotAllowedError,
    SettlementPendingError,
    StoreUnavailableError,
    TransferFailedError,
)
from src.bw_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert err.category == ErrorCategory.SYSTEM
        assert err.retriable is False

    def test_custom_http_status(self) -> None:
        err = AppError(code=2002, message="missing", http_status=404)
        assert err.http_status == 404

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestCategories:
    def test_insufficient_funds_is_precondition(self) -> None:
        err = InsufficientFundsError(required=8000, available=5000)
        assert err.code == 2001
        assert err.http_status == 422
        assert err.category == ErrorCategory.PRECONDITION
        assert "8000" in err.message
        assert "5000" in err.message

    def test_already_sold_is_conflict(self) -> None:
        err = ListingAlreadySoldError("lst-1")
        assert err.code == 3003
        assert err.http_status == 409
        assert err.category == ErrorCategory.CONFLICT

    def test_partial_failures(self) -> None:
        assert TransferFailedError("a", "b").category == ErrorCategory.PARTIAL_FAILURE
        assert PurchaseFailedError("lst-1").category == ErrorCategory.PARTIAL_FAILURE

    def test_failed_compensation_is_reported(self) -> None:
        err = TransferFailedError("a", "b", compensated=False)
        assert err.compensated is False
        assert "reconciliation" in err.message

    def test_store_unavailable_is_retriable_and_generic(self) -> None:
        err = StoreUnavailableError("debit")
        assert err.retriable is True
        assert err.http_status == 503
        assert err.category == ErrorCategory.INFRASTRUCTURE
        assert err.operation == "debit"
        assert "debit" not in err.message

    def test_settlement_pending_asks_for_replay(self) -> None:
        err = SettlementPendingError("u1:k1")
        assert err.code == 2005
        assert err.http_status == 503
        assert err.retriable is True
        assert err.operation_id == "u1:k1"
        assert "same idempotency key" in err.message

    def test_validation_errors(self) -> None:
        assert InvalidDurationError("9").category == ErrorCategory.VALIDATION
        assert SelfTransferNotAllowedError().category == ErrorCategory.PRECONDITION

    def test_account_not_found(self) -> None:
        err = AccountNotFoundError("user-1")
        assert err.code == 2002
        assert "user-1" in err.message


class TestApiResponse:
    def test_success_envelope(self) -> None:
        resp = success_response({"balance_cents": 4000})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"balance_cents": 4000}
        assert resp.request_id.startswith("req_")

    def test_error_envelope(self) -> None:
        resp = error_response(3003, "Listing already sold")
        assert resp.code == 3003
        assert resp.data is None

    def test_retriable_error_envelope_carries_key(self) -> None:
        resp = error_response(2005, "pending", request_id="req_abc", idempotency_key="k1")
        assert resp.data == {"idempotency_key": "k1"}
        assert resp.request_id == "req_abc"
