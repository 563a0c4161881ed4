# Overview: Flask API routes for checkout and receipts; parses input and returns JSON responses.

# backend/cashier/routes/transactions.py
"""Checkout API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service
from ..services.errors import PosError
from ..validation import ValidationError, require_int, optional_int, optional_str
from ..decorators import require_cashier


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("/checkout")
@require_cashier
def checkout_route():
    """
    Commit the active cart as a sale.

    Body: grand_total_cents (required), discount_cents, cash_cents,
    change_cents, customer_id, payment_method ("cash" or a gateway key).

    A gateway failure after the sale is committed still returns 201, with
    gateway_error describing what went wrong.
    """
    try:
        data = request.get_json() or {}

        result = checkout_service.checkout(
            g.cashier_id,
            grand_total_cents=require_int(data, "grand_total_cents"),
            discount_cents=optional_int(data, "discount_cents", 0),
            cash_cents=optional_int(data, "cash_cents"),
            change_cents=optional_int(data, "change_cents"),
            customer_id=optional_int(data, "customer_id"),
            payment_method=optional_str(data, "payment_method", max_length=32),
        )
        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<string:invoice>")
@require_cashier
def get_transaction_route(invoice: str):
    """Receipt view of a committed sale."""
    try:
        transaction = checkout_service.get_transaction(invoice)
        return jsonify({"transaction": transaction.to_dict(include_lines=True)}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load transaction %s", invoice)
        return jsonify({"error": "Internal server error"}), 500
