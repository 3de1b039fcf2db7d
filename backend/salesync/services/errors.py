# Overview: Expected, user-facing failures of the sale lifecycle and stock ledger.

from __future__ import annotations


class SaleLifecycleError(Exception):
    """
    Base for every expected lifecycle failure.

    kind is the machine-readable discriminator returned to HTTP and socket
    callers; status_code is the HTTP status the JSON API maps it to.
    Services roll the transaction back before letting one escape.
    """
    kind = "SaleLifecycleError"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


class ProductNotFound(SaleLifecycleError):
    kind = "ProductNotFound"
    status_code = 404


class SaleNotFound(SaleLifecycleError):
    kind = "SaleNotFound"
    status_code = 404


class InsufficientStock(SaleLifecycleError):
    """details: available, requested"""
    kind = "InsufficientStock"
    status_code = 400


class InvalidTransition(SaleLifecycleError):
    """details: sale_id, current_status"""
    kind = "InvalidTransition"
    status_code = 409


class MissingReason(SaleLifecycleError):
    kind = "MissingReason"
    status_code = 400


class InvalidSaleInput(SaleLifecycleError):
    kind = "InvalidSaleInput"
    status_code = 400


class InvalidMovementInput(SaleLifecycleError):
    """Manual stock adjustment rejected before touching the ledger."""
    kind = "InvalidMovementInput"
    status_code = 400
