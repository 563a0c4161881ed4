# Overview: Error taxonomy shared by the cart and checkout services.

"""
Precondition errors raised by the cart and checkout services.

Every error carries a machine-readable ``code`` and an ``http_status`` so the
route layer can render it without knowing each class. None of them is ever
raised after a mutation has been partially applied.
"""


class PosError(Exception):
    """Base class for recoverable cart/checkout errors."""
    code = "pos_error"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# Not found (404)

class ProductNotFound(PosError):
    code = "product_not_found"
    http_status = 404


class CustomerNotFound(PosError):
    code = "customer_not_found"
    http_status = 404


class CartItemNotFound(PosError):
    code = "cart_item_not_found"
    http_status = 404


class HoldGroupNotFound(PosError):
    code = "hold_group_not_found"
    http_status = 404


class TransactionNotFound(PosError):
    code = "transaction_not_found"
    http_status = 404


# Business rule conflicts (409)

class ActiveCartConflict(PosError):
    code = "active_cart_conflict"
    http_status = 409


# Validation (422)

class InsufficientStock(PosError):
    code = "insufficient_stock"
    http_status = 422


class InvalidQuantity(PosError):
    code = "invalid_quantity"
    http_status = 422


class InvalidHoldLabel(PosError):
    code = "invalid_hold_label"
    http_status = 422


class EmptyCart(PosError):
    code = "empty_cart"
    http_status = 422


class TotalsMismatch(PosError):
    code = "totals_mismatch"
    http_status = 422


class GatewayNotConfigured(PosError):
    code = "gateway_not_configured"
    http_status = 422


class InvoiceGenerationError(PosError):
    """Could not draw an unused invoice number."""
    code = "invoice_generation_failed"
    http_status = 503
