"""
Pytest fixtures for the cashier backend tests.

Provides an application bound to a fresh in-memory database per test,
cashiers, products, a customer, gateway configuration and a fake gateway.
"""

from datetime import datetime

import pytest

from cashier import create_app
from cashier.extensions import db
from cashier.models import User, Product, Customer
from cashier.services import payment_settings_service
from cashier.services.payment_gateway import PaymentGatewayError


FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53)


@pytest.fixture(scope='function')
def app():
    """Create application with an empty in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


def make_product(barcode="P-001", title="Product P", buy=60, sell=100, stock=5) -> Product:
    product = Product(
        barcode=barcode,
        title=title,
        buy_price_cents=buy,
        sell_price_cents=sell,
        stock=stock,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def cashier(app):
    user = User(name="Cashier A", email="cashier_a@shop.local", is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def other_cashier(app):
    user = User(name="Cashier B", email="cashier_b@shop.local", is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def product(app):
    """Stock 5, sell 100, buy 60."""
    return make_product()


@pytest.fixture(scope='function')
def second_product(app):
    return make_product(barcode="Q-001", title="Product Q", buy=20, sell=50, stock=10)


@pytest.fixture(scope='function')
def customer(app):
    customer = Customer(name="Budi", phone="0811000000")
    db.session.add(customer)
    db.session.commit()
    return customer


@pytest.fixture(scope='function')
def ready_gateway(app):
    """A fully configured, enabled gateway keyed "midtrans"."""
    payment_settings_service.configure_gateway(
        "midtrans",
        endpoint_url="https://pay.example.test/charge",
        server_key="sk-test",
        is_enabled=True,
    )
    return "midtrans"


class FakeGateway:
    """In-process PaymentGatewayPort recording its calls."""

    def __init__(self, response=None, error: str | None = None):
        self.response = response or {"reference": "REF-123", "payment_url": "https://pay.example.test/p/REF-123"}
        self.error = error
        self.calls = []

    def create_payment(self, transaction, gateway_key, config):
        self.calls.append((transaction.invoice, gateway_key, config.gateway if config else None))
        if self.error:
            raise PaymentGatewayError(self.error, gateway=gateway_key)
        return self.response


def cashier_headers(user) -> dict:
    return {'X-Cashier-Id': str(user.id)}
