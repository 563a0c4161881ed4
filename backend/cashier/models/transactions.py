from __future__ import annotations

from ..extensions import db
from cashier.time_utils import to_utc_z


PAYMENT_METHOD_CASH = "cash"

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PENDING = "pending"


class Transaction(db.Model):
    """
    Finalized sale header.

    WHY: Created exactly once per checkout, inside the same database
    transaction as its details, profits and stock decrements.

    IMMUTABLE except for the gateway settlement fields
    (payment_status, payment_reference, payment_url).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice", name="uq_transactions_invoice"),
        db.Index("ix_transactions_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing identifier (e.g., "TRX-4K9A0QZ1B7")
    invoice = db.Column(db.String(64), nullable=False)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Amounts (all in cents)
    cash_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False)

    # "cash" or a gateway key
    payment_method = db.Column(db.String(32), nullable=False, default=PAYMENT_METHOD_CASH)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PAID, index=True)  # paid, pending
    payment_reference = db.Column(db.String(128), nullable=True)
    payment_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    cashier = db.relationship("User")
    customer = db.relationship("Customer")
    details = db.relationship("TransactionDetail", back_populates="transaction", lazy=True, order_by="TransactionDetail.id")
    profits = db.relationship("Profit", back_populates="transaction", lazy=True, order_by="Profit.id")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} invoice={self.invoice!r} status={self.payment_status!r}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice": self.invoice,
            "cashier_id": self.cashier_id,
            "customer_id": self.customer_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "cash_cents": self.cash_cents,
            "change_cents": self.change_cents,
            "discount_cents": self.discount_cents,
            "grand_total_cents": self.grand_total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "payment_reference": self.payment_reference,
            "payment_url": self.payment_url,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["cashier"] = self.cashier.to_dict() if self.cashier else None
            data["details"] = [detail.to_dict() for detail in self.details]
            data["profit_total_cents"] = sum(p.total_cents for p in self.profits)
        return data


class TransactionDetail(db.Model):
    """Committed sale line. Immutable after creation."""
    __tablename__ = "transaction_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)

    # Line price at the time of sale (qty * unit sell price)
    price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("Transaction", back_populates="details")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "qty": self.qty,
            "price_cents": self.price_cents,
        }


class Profit(db.Model):
    """
    Margin of one committed line: (sell price - buy price) * qty.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "profits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    transaction_detail_id = db.Column(db.Integer, db.ForeignKey("transaction_details.id"), nullable=True, index=True)

    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("Transaction", back_populates="profits")
    detail = db.relationship("TransactionDetail")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "transaction_detail_id": self.transaction_detail_id,
            "total_cents": self.total_cents,
        }
