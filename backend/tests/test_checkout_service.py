# Checkout service tests
#
# Covers:
# - the full cash scenario (add, hold, resume, checkout)
# - all-or-nothing commit on stock failure
# - profit / detail / stock arithmetic
# - gateway readiness, settlement success and non-fatal settlement failure
# - receipt lookup by invoice

import pytest

from cashier.extensions import db
from cashier.models import CartItem, Product, Transaction, TransactionDetail, Profit
from cashier.services import cart_service, checkout_service, payment_settings_service
from cashier.services.errors import (
    CustomerNotFound,
    EmptyCart,
    GatewayNotConfigured,
    InsufficientStock,
    TotalsMismatch,
    TransactionNotFound,
)

from conftest import FIXED_NOW, FakeGateway


def _counts():
    return (
        db.session.query(Transaction).count(),
        db.session.query(TransactionDetail).count(),
        db.session.query(Profit).count(),
    )


class TestCashCheckout:

    def test_full_scenario(self, cashier, product):
        """
        SCENARIO: add P x2, hold as L1, resume, check out with cash 200
        EXPECTED: paid sale, one detail, profit 80, stock 3, empty cart
        """
        item = cart_service.add_item(cashier.id, product.id, 2)
        assert item.price_cents == 200

        hold_id = cart_service.hold(cashier.id, "L1")
        held = list(cart_service.list_held(cashier.id))
        assert [g.hold_id for g in held] == [hold_id]
        assert cart_service.active_items(cashier.id) == []

        cart_service.resume(cashier.id, hold_id)
        active = cart_service.active_items(cashier.id)
        assert [(i.qty, i.price_cents) for i in active] == [(2, 200)]
        assert list(cart_service.list_held(cashier.id)) == []

        result = checkout_service.checkout(
            cashier.id,
            payment_method="cash",
            cash_cents=200,
            grand_total_cents=200,
        )

        transaction = result.transaction
        assert result.gateway_error is None
        assert transaction.payment_status == "paid"
        assert transaction.payment_method == "cash"
        assert transaction.cash_cents == 200
        assert transaction.change_cents == 0
        assert [(d.qty, d.price_cents) for d in transaction.details] == [(2, 200)]
        assert [p.total_cents for p in transaction.profits] == [80]

        db.session.refresh(product)
        assert product.stock == 3
        assert db.session.query(CartItem).filter_by(cashier_id=cashier.id).count() == 0

    def test_invoice_format(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 1)

        result = checkout_service.checkout(cashier.id, grand_total_cents=100)

        invoice = result.transaction.invoice
        assert invoice.startswith("TRX-")
        assert len(invoice) == len("TRX-") + 10
        assert invoice == invoice.upper()

    def test_change_defaults_to_cash_minus_total(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 1)

        result = checkout_service.checkout(cashier.id, cash_cents=500, grand_total_cents=100)

        assert result.transaction.change_cents == 400

    def test_discount_and_customer(self, cashier, product, second_product, customer, clock):
        cart_service.add_item(cashier.id, product.id, 2)
        cart_service.add_item(cashier.id, second_product.id, 3)

        result = checkout_service.checkout(
            cashier.id,
            customer_id=customer.id,
            discount_cents=50,
            grand_total_cents=300,
            cash_cents=300,
            clock=clock,
        )

        transaction = result.transaction
        assert transaction.customer.name == "Budi"
        assert transaction.discount_cents == 50
        assert transaction.created_at == FIXED_NOW
        assert sum(d.price_cents for d in transaction.details) - transaction.discount_cents == transaction.grand_total_cents
        # (100-60)*2 + (50-20)*3
        assert sorted(p.total_cents for p in transaction.profits) == [80, 90]

        db.session.refresh(product)
        db.session.refresh(second_product)
        assert product.stock == 3
        assert second_product.stock == 7

    def test_held_lines_are_not_sold(self, cashier, product, second_product):
        cart_service.add_item(cashier.id, product.id, 1)
        hold_id = cart_service.hold(cashier.id, "later")
        cart_service.add_item(cashier.id, second_product.id, 2)

        result = checkout_service.checkout(cashier.id, grand_total_cents=100)

        assert [d.product_id for d in result.transaction.details] == [second_product.id]
        groups = list(cart_service.list_held(cashier.id))
        assert [g.hold_id for g in groups] == [hold_id]
        db.session.refresh(product)
        assert product.stock == 5

    def test_other_cashiers_cart_untouched(self, cashier, other_cashier, product):
        cart_service.add_item(cashier.id, product.id, 1)
        cart_service.add_item(other_cashier.id, product.id, 2)

        checkout_service.checkout(cashier.id, grand_total_cents=100)

        assert len(cart_service.active_items(other_cashier.id)) == 1


class TestCheckoutFailures:

    def test_empty_cart(self, cashier):
        with pytest.raises(EmptyCart):
            checkout_service.checkout(cashier.id, grand_total_cents=0)

        assert _counts() == (0, 0, 0)

    def test_stock_drained_since_add_rolls_everything_back(self, cashier, other_cashier, product, second_product):
        """
        SCENARIO: two lines in the cart; another cashier sells the stock of the second
        EXPECTED: InsufficientStock, no sale rows, first product's stock unchanged, cart intact
        """
        cart_service.add_item(cashier.id, product.id, 2)
        cart_service.add_item(cashier.id, second_product.id, 8)

        cart_service.add_item(other_cashier.id, second_product.id, 5)
        checkout_service.checkout(other_cashier.id, grand_total_cents=250)

        cart_before = sorted((i.product_id, i.qty, i.price_cents) for i in cart_service.active_items(cashier.id))
        sales_before = _counts()

        with pytest.raises(InsufficientStock) as exc:
            checkout_service.checkout(cashier.id, grand_total_cents=200 + 400)

        assert exc.value.details["product_id"] == second_product.id
        assert exc.value.details["on_hand"] == 5
        assert _counts() == sales_before
        assert sorted((i.product_id, i.qty, i.price_cents) for i in cart_service.active_items(cashier.id)) == cart_before

        db.session.expire_all()
        assert db.session.get(Product, product.id).stock == 5
        assert db.session.get(Product, second_product.id).stock == 5

    def test_totals_mismatch(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 2)

        with pytest.raises(TotalsMismatch):
            checkout_service.checkout(cashier.id, grand_total_cents=150)

        assert _counts() == (0, 0, 0)
        assert len(cart_service.active_items(cashier.id)) == 1

    def test_cash_below_total(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 2)

        with pytest.raises(TotalsMismatch):
            checkout_service.checkout(cashier.id, cash_cents=150, grand_total_cents=200)

    def test_unknown_customer(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 1)

        with pytest.raises(CustomerNotFound):
            checkout_service.checkout(cashier.id, customer_id=404, grand_total_cents=100)

        assert _counts() == (0, 0, 0)

    def test_gateway_not_configured(self, cashier, product):
        cart_service.add_item(cashier.id, product.id, 1)

        with pytest.raises(GatewayNotConfigured):
            checkout_service.checkout(cashier.id, payment_method="midtrans", grand_total_cents=100)

        assert _counts() == (0, 0, 0)
        db.session.refresh(product)
        assert product.stock == 5

    def test_gateway_disabled(self, cashier, product, ready_gateway):
        payment_settings_service.configure_gateway(ready_gateway, is_enabled=False)
        cart_service.add_item(cashier.id, product.id, 1)
        gateway = FakeGateway()

        with pytest.raises(GatewayNotConfigured):
            checkout_service.checkout(cashier.id, payment_method=ready_gateway, grand_total_cents=100, gateway=gateway)

        assert gateway.calls == []
        assert _counts() == (0, 0, 0)


class TestGatewayCheckout:

    def test_pending_sale_gets_reference(self, cashier, product, ready_gateway):
        cart_service.add_item(cashier.id, product.id, 2)
        gateway = FakeGateway()

        result = checkout_service.checkout(
            cashier.id,
            payment_method="MIDTRANS",
            cash_cents=999,
            change_cents=5,
            grand_total_cents=200,
            gateway=gateway,
        )

        transaction = result.transaction
        assert result.gateway_error is None
        assert transaction.payment_method == "midtrans"
        assert transaction.payment_status == "pending"
        assert transaction.cash_cents == 200
        assert transaction.change_cents == 0
        assert transaction.payment_reference == "REF-123"
        assert transaction.payment_url == "https://pay.example.test/p/REF-123"
        assert gateway.calls == [(transaction.invoice, "midtrans", "midtrans")]

    def test_gateway_failure_keeps_sale(self, cashier, product, ready_gateway):
        cart_service.add_item(cashier.id, product.id, 2)
        gateway = FakeGateway(error="card declined")

        result = checkout_service.checkout(
            cashier.id,
            payment_method=ready_gateway,
            grand_total_cents=200,
            gateway=gateway,
        )

        assert result.gateway_error == "card declined"
        transaction = db.session.query(Transaction).filter_by(invoice=result.transaction.invoice).one()
        assert transaction.payment_status == "pending"
        assert transaction.payment_reference is None
        db.session.refresh(product)
        assert product.stock == 3
        assert cart_service.active_items(cashier.id) == []


class TestGetTransaction:

    def test_lookup_by_invoice(self, cashier, product, customer):
        cart_service.add_item(cashier.id, product.id, 1)
        invoice = checkout_service.checkout(cashier.id, customer_id=customer.id, grand_total_cents=100).transaction.invoice

        transaction = checkout_service.get_transaction(invoice)

        data = transaction.to_dict(include_lines=True)
        assert data["invoice"] == invoice
        assert data["cashier"]["id"] == cashier.id
        assert data["customer"]["name"] == "Budi"
        assert data["details"][0]["product"]["title"] == "Product P"
        assert data["profit_total_cents"] == 40

    def test_unknown_invoice(self, app):
        with pytest.raises(TransactionNotFound):
            checkout_service.get_transaction("TRX-NOPE")
