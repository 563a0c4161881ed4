# Overview: Service-layer lookups for products and customers.

from __future__ import annotations

from ..extensions import db
from ..models import Product, Customer
from .errors import ProductNotFound, CustomerNotFound


def find_by_id(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def find_by_barcode(barcode: str) -> Product | None:
    if not barcode:
        return None
    return db.session.query(Product).filter_by(barcode=barcode.strip()).first()


def require_product(product_id: int) -> Product:
    """Return the product or raise ProductNotFound."""
    product = find_by_id(product_id)
    if not product:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    return product


def find_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def require_customer(customer_id: int) -> Customer:
    customer = find_customer(customer_id)
    if not customer:
        raise CustomerNotFound("Customer not found", details={"customer_id": customer_id})
    return customer
