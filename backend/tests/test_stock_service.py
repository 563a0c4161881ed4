# Stock ledger tests
#
# decrement() never commits; these tests commit or roll back themselves.

import pytest

from cashier.extensions import db
from cashier.models import Product
from cashier.services import stock_service
from cashier.services.errors import InsufficientStock, InvalidQuantity, ProductNotFound


def test_decrement_lowers_stock(product):
    stock_service.decrement(product.id, 3)
    db.session.commit()

    db.session.expire_all()
    assert db.session.get(Product, product.id).stock == 2


def test_decrement_bumps_version(product):
    version = product.version_id

    stock_service.decrement(product.id, 1)
    db.session.commit()

    db.session.refresh(product)
    assert product.version_id == version + 1


def test_decrement_to_zero(product):
    stock_service.decrement(product.id, 5)
    db.session.commit()

    assert stock_service.available(product.id) == 0


def test_decrement_beyond_stock(product):
    with pytest.raises(InsufficientStock) as exc:
        stock_service.decrement(product.id, 6)

    assert exc.value.details == {"product_id": product.id, "requested_quantity": 6, "on_hand": 5}
    db.session.rollback()
    assert stock_service.available(product.id) == 5


def test_decrement_unknown_product(app):
    with pytest.raises(ProductNotFound):
        stock_service.decrement(777, 1)


def test_decrement_rejects_bad_quantity(product):
    with pytest.raises(InvalidQuantity):
        stock_service.decrement(product.id, 0)


def test_rollback_discards_decrement(product):
    stock_service.decrement(product.id, 2)
    db.session.rollback()

    assert stock_service.available(product.id) == 5
