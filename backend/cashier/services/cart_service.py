# Overview: Service-layer operations for the cashier cart; encapsulates business logic and database work.

"""
Cart Service - per-cashier cart with hold/resume

WHY: A cashier rings up one sale at a time but often has to park it (customer
went back for an item) and serve the next person. Rows in cart_items are
either active (the sale on screen) or held under a shared hold id.

TRANSITIONS:
- add/update/remove    mutate single rows
- hold                 active rows -> one new hold group
- resume               hold group -> active rows (only when nothing is active)
- clear_hold           hold group -> deleted

Every group transition is one UPDATE/DELETE inside one transaction, so a
group is never left half held.

MERGE RULE: add_item matches on (cashier, product) without looking at hold
status. Adding a product that sits in a parked sale increments the parked
row rather than creating an active one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from operator import attrgetter

from flask import current_app
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import CartItem
from ..models.cart import active_clause, held_clause, hold_group_clause
from cashier.time_utils import Clock, to_utc_z, utcnow
from .catalog_service import require_product
from .concurrency import RETRYABLE_ERRORS, begin_write, lock_for_update, run_with_retry
from .errors import (
    ActiveCartConflict,
    CartItemNotFound,
    EmptyCart,
    HoldGroupNotFound,
    InsufficientStock,
    InvalidHoldLabel,
    InvalidQuantity,
)


def _require_positive_qty(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidQuantity("Quantity must be a positive integer", details={"qty": qty})
    return qty


def _check_stock(product, qty: int) -> None:
    # Checked only; stock is reserved nowhere until checkout.
    if qty > product.stock:
        raise InsufficientStock(
            "Insufficient stock",
            details={
                "product_id": product.id,
                "requested_quantity": qty,
                "on_hand": product.stock,
            },
        )


def _new_hold_id() -> str:
    return f"HOLD-{uuid.uuid4().hex[:13].upper()}"


# =============================================================================
# ACTIVE CART
# =============================================================================

def active_items(cashier_id: int) -> list[CartItem]:
    """Active rows for the cashier, newest first."""
    return (
        db.session.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.cashier_id == cashier_id, active_clause())
        .order_by(CartItem.created_at.desc(), CartItem.id.desc())
        .all()
    )


def add_item(cashier_id: int, product_id: int, qty: int) -> CartItem:
    """
    Add qty of a product to the cashier's cart.

    Merges into an existing (cashier, product) row when there is one,
    otherwise creates an active row. Price is always sell price * qty.

    Raises:
        InvalidQuantity, ProductNotFound, InsufficientStock
    """
    _require_positive_qty(qty)

    def _op():
        begin_write()
        product = require_product(product_id)
        _check_stock(product, qty)

        item = lock_for_update(
            db.session.query(CartItem).filter_by(cashier_id=cashier_id, product_id=product_id)
        ).first()

        if item:
            item.qty = item.qty + qty
            item.price_cents = product.sell_price_cents * item.qty
        else:
            item = CartItem(
                cashier_id=cashier_id,
                product_id=product_id,
                qty=qty,
                price_cents=product.sell_price_cents * qty,
            )
            db.session.add(item)

        db.session.commit()
        return item

    # A double-submitted add can lose the insert race; the retry merges instead.
    return run_with_retry(_op, retry_on=RETRYABLE_ERRORS + (IntegrityError,))


def update_quantity(cashier_id: int, cart_item_id: int, qty: int) -> CartItem:
    """
    Overwrite the quantity of one of the cashier's rows.

    Raises:
        InvalidQuantity, CartItemNotFound, InsufficientStock
    """
    _require_positive_qty(qty)

    def _op():
        begin_write()
        item = lock_for_update(
            db.session.query(CartItem).filter_by(id=cart_item_id, cashier_id=cashier_id)
        ).first()
        if not item:
            raise CartItemNotFound("Cart item not found", details={"cart_item_id": cart_item_id})

        product = item.product
        _check_stock(product, qty)

        item.qty = qty
        item.price_cents = product.sell_price_cents * qty

        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_item(cart_item_id: int, cashier_id: int | None = None) -> None:
    """Delete one row. When cashier_id is given the row must be theirs."""
    def _op():
        stmt = delete(CartItem).where(CartItem.id == cart_item_id)
        if cashier_id is not None:
            stmt = stmt.where(CartItem.cashier_id == cashier_id)

        result = db.session.execute(stmt)
        if not result.rowcount:
            raise CartItemNotFound("Cart item not found", details={"cart_item_id": cart_item_id})

        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# HOLD / RESUME
# =============================================================================

def hold(cashier_id: int, label: str | None = None, *, clock: Clock = utcnow) -> str:
    """
    Park every active row under a new hold id and return it.

    Label defaults to "Sale HH:MM" using the supplied clock.

    Raises:
        InvalidHoldLabel: label longer than HOLD_LABEL_MAX_LENGTH
        EmptyCart: nothing active to hold
    """
    max_length = current_app.config.get("HOLD_LABEL_MAX_LENGTH", 50)
    label = (label or "").strip()
    if len(label) > max_length:
        raise InvalidHoldLabel(
            f"Hold label must be at most {max_length} characters",
            details={"max_length": max_length},
        )

    def _op():
        begin_write()
        active_count = (
            db.session.query(CartItem)
            .filter(CartItem.cashier_id == cashier_id, active_clause())
            .count()
        )
        if not active_count:
            raise EmptyCart("Cart is empty, nothing to hold")

        held_at = clock()
        hold_id = _new_hold_id()
        stmt = (
            update(CartItem)
            .where(CartItem.cashier_id == cashier_id, active_clause())
            .values(
                hold_id=hold_id,
                hold_label=label or f"Sale {held_at:%H:%M}",
                held_at=held_at,
                version_id=CartItem.version_id + 1,
            )
        )
        db.session.execute(stmt)
        db.session.commit()
        return hold_id

    return run_with_retry(_op)


def resume(cashier_id: int, hold_id: str) -> None:
    """
    Make a held group the active cart again.

    Raises:
        ActiveCartConflict: the cashier already has active rows
        HoldGroupNotFound: no rows carry hold_id for this cashier
    """
    def _op():
        begin_write()
        active_count = (
            db.session.query(CartItem)
            .filter(CartItem.cashier_id == cashier_id, active_clause())
            .count()
        )
        if active_count:
            raise ActiveCartConflict(
                "Finish or hold the active sale before resuming another",
                details={"active_items": active_count},
            )

        stmt = (
            update(CartItem)
            .where(CartItem.cashier_id == cashier_id, hold_group_clause(hold_id))
            .values(
                hold_id=None,
                hold_label=None,
                held_at=None,
                version_id=CartItem.version_id + 1,
            )
        )
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise HoldGroupNotFound("Held sale not found", details={"hold_id": hold_id})

        db.session.commit()

    run_with_retry(_op)


def clear_hold(cashier_id: int, hold_id: str) -> None:
    """Delete every row of a held group. Raises HoldGroupNotFound when none match."""
    def _op():
        stmt = delete(CartItem).where(CartItem.cashier_id == cashier_id, hold_group_clause(hold_id))
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise HoldGroupNotFound("Held sale not found", details={"hold_id": hold_id})

        db.session.commit()

    run_with_retry(_op)


@dataclass(frozen=True)
class HoldGroupSummary:
    hold_id: str
    label: str | None
    held_at: datetime | None
    items_count: int
    total_cents: int
    items: tuple[CartItem, ...]

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "hold_id": self.hold_id,
            "label": self.label,
            "held_at": to_utc_z(self.held_at),
            "items_count": self.items_count,
            "total_cents": self.total_cents,
        }
        if include_items:
            data["items"] = [
                {
                    "id": item.id,
                    "product": item.product.to_dict() if item.product else None,
                    "qty": item.qty,
                    "price_cents": item.price_cents,
                }
                for item in self.items
            ]
        return data


class HeldCarts:
    """
    Held groups of one cashier.

    Iterating runs a fresh query, so the same object can be walked again
    after the cart changes.
    """

    def __init__(self, cashier_id: int):
        self.cashier_id = cashier_id

    def _rows(self):
        return (
            db.session.query(CartItem)
            .options(joinedload(CartItem.product))
            .filter(CartItem.cashier_id == self.cashier_id, held_clause())
            .order_by(CartItem.held_at, CartItem.hold_id, CartItem.id)
        )

    def __iter__(self):
        for hold_id, group in groupby(self._rows(), key=attrgetter("hold_id")):
            items = tuple(group)
            first = items[0]
            yield HoldGroupSummary(
                hold_id=hold_id,
                label=first.hold_label,
                held_at=first.held_at,
                items_count=sum(item.qty for item in items),
                total_cents=sum(item.price_cents for item in items),
                items=items,
            )


def list_held(cashier_id: int) -> HeldCarts:
    return HeldCarts(cashier_id)


# =============================================================================
# SUMMARY
# =============================================================================

def cart_summary(cashier_id: int) -> dict:
    """Everything a register screen needs to render the cashier's cart."""
    from . import payment_settings_service

    items = active_items(cashier_id)
    return {
        "items": [item.to_dict() for item in items],
        "total_cents": sum(item.price_cents for item in items),
        "held_carts": [group.to_dict(include_items=False) for group in list_held(cashier_id)],
        "payment_gateways": payment_settings_service.enabled_gateways(),
        "default_payment_gateway": payment_settings_service.default_gateway(),
    }
