# Overview: Guarded stock decrements over the product catalog.

"""
Stock Ledger

WHY: Product.stock is shared by every cashier. Reading the count, checking
it and writing it back as three steps lets two checkouts sell the same last
unit. Instead the check and the write are a single conditional UPDATE:

    UPDATE products
       SET stock = stock - :qty, version_id = version_id + 1
     WHERE id = :product_id AND stock >= :qty

Zero affected rows means the guard failed. Nothing here commits; the caller
owns the transaction so the decrement lands together with the sale.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from .errors import InsufficientStock, InvalidQuantity, ProductNotFound


def available(product_id: int) -> int | None:
    """Current stock as stored (None when the product does not exist)."""
    return (
        db.session.query(Product.stock)
        .filter(Product.id == product_id)
        .scalar()
    )


def decrement(product_id: int, qty: int) -> None:
    """
    Lower stock by qty, or raise without touching anything.

    Raises:
        InvalidQuantity: qty is not a positive integer
        ProductNotFound: no such product
        InsufficientStock: stock at commit time is below qty
    """
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidQuantity("Quantity must be a positive integer", details={"qty": qty})

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= qty)
        .values(stock=Product.stock - qty, version_id=Product.version_id + 1)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        return

    on_hand = available(product_id)
    if on_hand is None:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    raise InsufficientStock(
        "Insufficient stock",
        details={
            "product_id": product_id,
            "requested_quantity": qty,
            "on_hand": on_hand,
        },
    )
