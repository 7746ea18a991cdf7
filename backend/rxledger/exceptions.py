# Overview: Error taxonomy shared by the stock ledger services and routes.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger and point-of-sale failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class NotFoundError(LedgerError):
    """Product, sale or reconciliation case missing (or not in an actionable state)."""
    status_code = 404


class InactiveProductError(LedgerError):
    pass


class InsufficientStockError(LedgerError):
    """
    Raised by strict-mode checks and by the stock mutator.

    Carries the shortfall so callers can show it and offer an override.
    """

    def __init__(self, product_name: str, available: int, requested: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
            details={
                "product_name": product_name,
                "available": available,
                "requested": requested,
                "suggestion": "Set ignore_stock=true to proceed anyway",
            },
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class InsufficientPaymentError(LedgerError):
    def __init__(self, total_amount_cents: int, amount_paid_cents: int):
        super().__init__(
            f"Insufficient payment. Total: {total_amount_cents}, Paid: {amount_paid_cents}",
            details={
                "total_amount_cents": total_amount_cents,
                "amount_paid_cents": amount_paid_cents,
            },
        )


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""


class InvalidTransitionError(LedgerError):
    """409-level reconciliation state machine violation."""
    status_code = 409


class TransientPersistenceError(LedgerError):
    """Transaction aborted by the store; the whole call is safe to retry."""
    status_code = 503
