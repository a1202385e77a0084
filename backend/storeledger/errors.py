# Overview: Typed ledger errors shared by services and routes.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every business-rule failure the API reports."""

    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """Malformed or out-of-range input, rejected before any transaction opens."""
    code = "validation_error"
    status_code = 400


class NotFoundError(LedgerError):
    """Entity absent, or owned by another store."""
    code = "not_found"
    status_code = 404


class InsufficientStockError(LedgerError):
    code = "insufficient_stock"
    status_code = 409


class InvalidAmountError(LedgerError):
    """Payment amount is not positive or exceeds the remaining balance."""
    code = "invalid_amount"
    status_code = 400


class ConflictError(LedgerError):
    """Uniqueness violation or a state transition that is not allowed."""
    code = "conflict"
    status_code = 409


class InternalError(LedgerError):
    code = "internal_error"
    status_code = 500
