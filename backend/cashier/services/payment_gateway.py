# Overview: Port and HTTP driver for external payment providers.

"""
Payment Gateway Port

WHY: Non-cash sales are settled by an external provider after the sale is
committed. The call is slow and can fail, so it is never made inside the
checkout database transaction; a failure leaves the sale pending.

CONTRACT:
    create_payment(transaction, gateway_key, config) -> {"reference", "payment_url"}
    raises PaymentGatewayError on any provider/transport problem

DRIVERS:
- PaymentGatewayManager dispatches on gateway key
- HttpPaymentGateway posts the sale as JSON to the configured endpoint
"""

from __future__ import annotations

import json
import time
from typing import Callable, Protocol

import httpx
from flask import current_app

from ..models import Transaction, PaymentGatewayConfig


DEFAULT_TIMEOUT_SECONDS = 10.0


class PaymentGatewayError(Exception):
    """Raised when a provider rejects or fails to answer a payment request."""
    def __init__(self, message: str, gateway: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.gateway = gateway
        self.details = details or {}


class PaymentGatewayPort(Protocol):
    def create_payment(
        self,
        transaction: Transaction,
        gateway_key: str,
        config: PaymentGatewayConfig | None,
    ) -> dict:
        ...


def build_payment_payload(transaction: Transaction) -> dict:
    customer = transaction.customer
    return {
        "order_id": transaction.invoice,
        "gross_amount_cents": transaction.grand_total_cents,
        "discount_cents": transaction.discount_cents,
        "customer": {
            "name": customer.name,
            "phone": customer.phone,
        } if customer else None,
        "items": [
            {
                "product_id": detail.product_id,
                "name": detail.product.title if detail.product else None,
                "qty": detail.qty,
                "price_cents": detail.price_cents,
            }
            for detail in transaction.details
        ],
    }


class HttpPaymentGateway:
    """
    Generic JSON-over-HTTP provider driver.

    httpx applies timeout_seconds to each connect/read/write step. The body
    is streamed and checked against a deadline for the whole call as well,
    so a provider trickling bytes cannot hold the register past the limit.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        self.transport = transport
        self.monotonic = monotonic

    def _post(self, url: str, payload: dict, headers: dict, gateway_key: str) -> tuple[int, bytes]:
        deadline = self.monotonic() + self.timeout_seconds
        chunks = []
        with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
            with client.stream("POST", url, json=payload, headers=headers) as response:
                for chunk in response.iter_bytes():
                    if self.monotonic() > deadline:
                        raise PaymentGatewayError("Payment gateway timed out", gateway=gateway_key)
                    chunks.append(chunk)
                return response.status_code, b"".join(chunks)

    def create_payment(self, transaction, gateway_key, config):
        if config is None or not config.is_ready:
            raise PaymentGatewayError("Gateway is not configured", gateway=gateway_key)

        payload = build_payment_payload(transaction)
        headers = {"Authorization": f"Bearer {config.server_key}"}

        current_app.logger.debug("Requesting %s payment for %s", gateway_key, transaction.invoice)
        try:
            status_code, content = self._post(config.endpoint_url, payload, headers, gateway_key)
        except httpx.TimeoutException as exc:
            raise PaymentGatewayError("Payment gateway timed out", gateway=gateway_key) from exc
        except httpx.HTTPError as exc:
            raise PaymentGatewayError("Payment gateway unreachable", gateway=gateway_key) from exc

        if status_code >= 400:
            raise PaymentGatewayError(
                f"Payment gateway rejected the request ({status_code})",
                gateway=gateway_key,
                details={"status_code": status_code, "body": content[:500].decode("utf-8", errors="replace")},
            )

        try:
            body = json.loads(content)
        except ValueError as exc:
            raise PaymentGatewayError("Payment gateway returned invalid JSON", gateway=gateway_key) from exc

        if not isinstance(body, dict):
            raise PaymentGatewayError("Payment gateway returned an unexpected body", gateway=gateway_key)

        reference = body.get("reference") or body.get("token")
        payment_url = body.get("payment_url") or body.get("redirect_url")
        if not reference and not payment_url:
            raise PaymentGatewayError("Payment gateway response has no reference", gateway=gateway_key)

        return {"reference": reference, "payment_url": payment_url}


class PaymentGatewayManager:
    """Routes a payment request to the driver registered for its gateway key."""

    def __init__(self, drivers: dict | None = None, fallback: PaymentGatewayPort | None = None):
        self.drivers = dict(drivers or {})
        self.fallback = fallback

    def register(self, gateway_key: str, driver: PaymentGatewayPort) -> None:
        self.drivers[gateway_key.lower()] = driver

    def create_payment(self, transaction, gateway_key, config):
        driver = self.drivers.get(gateway_key.lower(), self.fallback)
        if driver is None:
            raise PaymentGatewayError(f"No driver for gateway {gateway_key}", gateway=gateway_key)
        return driver.create_payment(transaction, gateway_key, config)


def default_gateway_manager() -> PaymentGatewayManager:
    timeout = current_app.config.get("PAYMENT_GATEWAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    return PaymentGatewayManager(fallback=HttpPaymentGateway(timeout_seconds=timeout))
