# Overview: Invoice number generation for committed sales.

from __future__ import annotations

import random
import string
from typing import Callable

from flask import current_app

from ..extensions import db
from ..models import Transaction
from .errors import InvoiceGenerationError


DEFAULT_PREFIX = "TRX"
DEFAULT_LENGTH = 10

_system_random = random.SystemRandom()


def _draw_suffix(length: int, rng) -> str:
    # Each position is a digit or a letter with even odds.
    chars = []
    for _ in range(length):
        if rng.randint(0, 1):
            chars.append(rng.choice(string.digits))
        else:
            chars.append(rng.choice(string.ascii_lowercase))
    return "".join(chars).upper()


def invoice_exists(invoice: str) -> bool:
    return db.session.query(Transaction.id).filter_by(invoice=invoice).first() is not None


def generate_invoice(
    *,
    prefix: str | None = None,
    length: int | None = None,
    exists: Callable[[str], bool] | None = None,
    attempts: int = 5,
    rng=None,
) -> str:
    """
    Draw an invoice number such as ``TRX-4K9A0QZ1B7`` that is not in use.

    Candidates are checked with ``exists`` (default: a lookup on
    transactions.invoice) and redrawn on collision. The unique constraint on
    the column still backs this up for writers racing on other dialects.

    Raises:
        InvoiceGenerationError: every attempt collided
    """
    if prefix is None:
        prefix = current_app.config.get("INVOICE_PREFIX", DEFAULT_PREFIX)
    if length is None:
        length = current_app.config.get("INVOICE_SUFFIX_LENGTH", DEFAULT_LENGTH)
    if length <= 0:
        raise ValueError("Invoice suffix length must be positive")

    exists = exists or invoice_exists
    rng = rng or _system_random

    for _ in range(attempts):
        candidate = f"{prefix}-{_draw_suffix(length, rng)}"
        if not exists(candidate):
            return candidate

    raise InvoiceGenerationError(
        "Could not allocate a unique invoice number",
        details={"attempts": attempts, "prefix": prefix},
    )
