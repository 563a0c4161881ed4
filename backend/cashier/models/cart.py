from __future__ import annotations

from ..extensions import db
from cashier.time_utils import to_utc_z


class CartItem(db.Model):
    """
    One pending line in a cashier's cart.

    STATE:
    - hold_id IS NULL      -> active (part of the sale being rung up)
    - hold_id IS NOT NULL  -> held (parked with every other row sharing that id)

    A hold group is never stored on its own; it is the set of rows sharing
    hold_id, and it is always resumed or cleared as a unit.

    MERGE RULE: adding a product the cashier already has in any row (active
    or held) increments that row, so (cashier_id, product_id) is unique.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cashier_id", "product_id", name="uq_cart_items_cashier_product"),
        db.CheckConstraint("qty > 0", name="ck_cart_items_qty_positive"),
        db.Index("ix_cart_items_cashier_hold", "cashier_id", "hold_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    qty = db.Column(db.Integer, nullable=False)

    # qty * product.sell_price_cents, refreshed on every quantity change
    price_cents = db.Column(db.Integer, nullable=False)

    # Hold group fields (all NULL while active)
    hold_id = db.Column(db.String(32), nullable=True)
    hold_label = db.Column(db.String(50), nullable=True)
    held_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    cashier = db.relationship("User", backref=db.backref("cart_items", lazy=True))
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<CartItem id={self.id} cashier_id={self.cashier_id} product_id={self.product_id} qty={self.qty} hold_id={self.hold_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "qty": self.qty,
            "price_cents": self.price_cents,
            "hold_id": self.hold_id,
            "hold_label": self.hold_label,
            "held_at": to_utc_z(self.held_at) if self.held_at else None,
            "created_at": to_utc_z(self.created_at),
        }


def is_active(item: CartItem) -> bool:
    return item.hold_id is None


def is_in_group(item: CartItem, hold_id: str) -> bool:
    return item.hold_id is not None and item.hold_id == hold_id


# SQL counterparts of the predicates above, for use in query filters

def active_clause():
    return CartItem.hold_id.is_(None)


def held_clause():
    return CartItem.hold_id.isnot(None)


def hold_group_clause(hold_id: str):
    return CartItem.hold_id == hold_id
