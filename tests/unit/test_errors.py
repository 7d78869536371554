"""Tests for the billing error taxonomy."""

from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    error_response,
)


class TestBillingErrors:
    def test_codes_and_statuses(self) -> None:
        cases = [
            (NotFoundError("x"), "not_found", 404),
            (InvalidInputError("x"), "invalid_input", 400),
            (ConflictError("x"), "conflict", 409),
            (InvalidStateError("x"), "invalid_state", 400),
        ]
        for error, code, status in cases:
            assert isinstance(error, BillingError)
            assert error.code == code
            assert error.http_status == status

    def test_invalid_state_custom_status(self) -> None:
        error = InvalidStateError("Payments cannot be deleted once created.", 405)
        assert error.http_status == 405
        assert str(error) == "Payments cannot be deleted once created."

    def test_error_response_shape(self) -> None:
        body = error_response(ConflictError("Invoice overlaps"))
        assert body == {"error": {"code": "conflict", "message": "Invoice overlaps"}}
