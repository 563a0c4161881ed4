# Overview: Service-layer checkout; turns an active cart into a committed sale.

"""
Checkout Service - cart to committed sale

WHY: The sale header, its lines, the profit records, the stock decrements and
the removal of the consumed cart rows must land together or not at all.

PHASES:
1. Preconditions   gateway readiness, customer lookup, amount sanity
2. Commit          one DB transaction (BEGIN IMMEDIATE on SQLite, row locks
                   elsewhere), retried on lock contention
3. Settlement      non-cash only: external gateway call after the commit.
                   A gateway failure keeps the sale (status stays pending)
                   and is reported on the result, never rolled back.

Stock is re-validated inside the commit through stock_service.decrement,
because other cashiers may have sold the same units since the item was added.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import CartItem, Transaction, TransactionDetail, Profit
from ..models.cart import active_clause
from ..models.transactions import PAYMENT_METHOD_CASH, PAYMENT_STATUS_PAID, PAYMENT_STATUS_PENDING
from cashier.time_utils import Clock, utcnow
from . import payment_settings_service, stock_service
from .catalog_service import require_customer
from .concurrency import RETRYABLE_ERRORS, begin_write, lock_for_update, run_with_retry
from .errors import EmptyCart, GatewayNotConfigured, TotalsMismatch, TransactionNotFound
from .invoice_service import generate_invoice
from .payment_gateway import PaymentGatewayError, PaymentGatewayPort, default_gateway_manager


@dataclass(frozen=True)
class CheckoutResult:
    transaction: Transaction
    gateway_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(include_lines=True),
            "gateway_error": self.gateway_error,
        }


def _require_amount(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TotalsMismatch(f"{name} must be a non-negative integer amount in cents", details={name: value})
    return value


def checkout(
    cashier_id: int,
    *,
    grand_total_cents: int,
    payment_method: str | None = None,
    customer_id: int | None = None,
    cash_cents: int | None = None,
    change_cents: int | None = None,
    discount_cents: int = 0,
    gateway: PaymentGatewayPort | None = None,
    clock: Clock = utcnow,
) -> CheckoutResult:
    """
    Commit the cashier's active cart as a sale.

    Args:
        cashier_id: Cashier whose active rows are sold (held rows are untouched)
        grand_total_cents: Must equal sum of line prices minus discount
        payment_method: "cash" (default) or a configured gateway key
        customer_id: Optional customer to attribute the sale to
        cash_cents: Cash tendered (cash sales; defaults to the grand total)
        change_cents: Change handed back (cash sales; defaults to cash - total)
        discount_cents: Discount applied to the sale
        gateway: Port used for non-cash settlement (defaults to HTTP drivers)
        clock: Source of the sale timestamp

    Returns:
        CheckoutResult with the committed transaction (customer loaded) and
        the gateway error message, if settlement failed

    Raises:
        GatewayNotConfigured, CustomerNotFound, TotalsMismatch, EmptyCart,
        InsufficientStock, ProductNotFound, InvoiceGenerationError
    """
    method = payment_settings_service.normalize_method(payment_method)
    is_cash = method == PAYMENT_METHOD_CASH

    gateway_config = None
    if not is_cash:
        if not payment_settings_service.is_gateway_ready(method):
            raise GatewayNotConfigured(
                "Payment gateway is not configured",
                details={"payment_method": method},
            )
        gateway_config = payment_settings_service.get_gateway_config(method)

    if customer_id is not None:
        require_customer(customer_id)

    _require_amount("grand_total_cents", grand_total_cents)
    _require_amount("discount_cents", discount_cents)
    if cash_cents is not None:
        _require_amount("cash_cents", cash_cents)
    if change_cents is not None:
        _require_amount("change_cents", change_cents)

    def _op():
        begin_write()
        items = lock_for_update(
            db.session.query(CartItem)
            .options(joinedload(CartItem.product))
            .filter(CartItem.cashier_id == cashier_id, active_clause())
            .order_by(CartItem.id)
        ).all()
        if not items:
            raise EmptyCart("Cart is empty")

        subtotal = sum(item.price_cents for item in items)
        if subtotal - discount_cents != grand_total_cents:
            raise TotalsMismatch(
                "Grand total does not match the cart",
                details={
                    "subtotal_cents": subtotal,
                    "discount_cents": discount_cents,
                    "grand_total_cents": grand_total_cents,
                },
            )

        if is_cash:
            cash = grand_total_cents if cash_cents is None else cash_cents
            if cash < grand_total_cents:
                raise TotalsMismatch(
                    "Cash tendered is less than the grand total",
                    details={"cash_cents": cash, "grand_total_cents": grand_total_cents},
                )
            change = cash - grand_total_cents if change_cents is None else change_cents
        else:
            # Gateways collect the full amount; no change is handed out.
            cash = grand_total_cents
            change = 0

        transaction = Transaction(
            invoice=generate_invoice(),
            cashier_id=cashier_id,
            customer_id=customer_id,
            cash_cents=cash,
            change_cents=change,
            discount_cents=discount_cents,
            grand_total_cents=grand_total_cents,
            payment_method=method,
            payment_status=PAYMENT_STATUS_PAID if is_cash else PAYMENT_STATUS_PENDING,
            created_at=clock(),
        )
        db.session.add(transaction)
        db.session.flush()

        for item in items:
            product = item.product

            detail = TransactionDetail(
                transaction_id=transaction.id,
                product_id=item.product_id,
                qty=item.qty,
                price_cents=item.price_cents,
            )
            db.session.add(detail)
            db.session.flush()

            db.session.add(Profit(
                transaction_id=transaction.id,
                transaction_detail_id=detail.id,
                total_cents=(product.sell_price_cents - product.buy_price_cents) * item.qty,
            ))

            stock_service.decrement(item.product_id, item.qty)

        for item in items:
            db.session.delete(item)

        db.session.commit()
        return transaction.id, transaction.invoice

    # IntegrityError covers an invoice taken by a concurrent writer; the retry draws a new one.
    transaction_id, invoice = run_with_retry(_op, retry_on=RETRYABLE_ERRORS + (IntegrityError,))
    current_app.logger.info("Committed sale %s for cashier %s via %s", invoice, cashier_id, method)

    gateway_error = None
    if not is_cash:
        gateway = gateway or default_gateway_manager()
        transaction = _load_transaction(transaction_id)
        try:
            response = gateway.create_payment(transaction, method, gateway_config)
        except PaymentGatewayError as exc:
            current_app.logger.warning("Gateway %s failed for sale %s: %s", method, invoice, exc)
            gateway_error = str(exc)
        else:
            _record_gateway_response(transaction_id, response or {})

    return CheckoutResult(transaction=_load_transaction(transaction_id), gateway_error=gateway_error)


def _record_gateway_response(transaction_id: int, response: dict) -> None:
    def _op():
        transaction = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        transaction.payment_reference = response.get("reference")
        transaction.payment_url = response.get("payment_url")
        db.session.commit()

    run_with_retry(_op)


def _load_transaction(transaction_id: int) -> Transaction:
    return (
        db.session.query(Transaction)
        .options(
            joinedload(Transaction.customer),
            selectinload(Transaction.details).joinedload(TransactionDetail.product),
        )
        .filter_by(id=transaction_id)
        .one()
    )


def get_transaction(invoice: str) -> Transaction:
    """Committed sale with lines, cashier and customer loaded (receipt view)."""
    transaction = (
        db.session.query(Transaction)
        .options(
            joinedload(Transaction.customer),
            joinedload(Transaction.cashier),
            selectinload(Transaction.details).joinedload(TransactionDetail.product),
            selectinload(Transaction.profits),
        )
        .filter_by(invoice=invoice)
        .first()
    )
    if not transaction:
        raise TransactionNotFound("Transaction not found", details={"invoice": invoice})
    return transaction
