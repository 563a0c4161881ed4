# Overview: Flask API routes for the cashier cart; parses input and returns JSON responses.

# backend/cashier/routes/cart.py
"""Cart API routes (active cart, hold/resume)"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import cart_service, catalog_service
from ..services.errors import PosError
from ..validation import ValidationError, require_int, optional_str
from ..decorators import require_cashier


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("/")
@require_cashier
def get_cart_route():
    """Active lines, active total, held sales and payment options."""
    try:
        return jsonify(cart_service.cart_summary(g.cashier_id)), 200
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.get("/products/barcode/<string:barcode>")
@require_cashier
def search_product_route(barcode: str):
    """Scanner lookup."""
    product = catalog_service.find_by_barcode(barcode)
    if not product:
        return jsonify({"success": False, "product": None}), 404
    return jsonify({"success": True, "product": product.to_dict()}), 200


@cart_bp.post("/items")
@require_cashier
def add_item_route():
    try:
        data = request.get_json() or {}
        product_id = require_int(data, "product_id")
        qty = require_int(data, "qty")

        item = cart_service.add_item(g.cashier_id, product_id, qty)
        return jsonify({"item": item.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/items/<int:cart_item_id>")
@require_cashier
def update_item_route(cart_item_id: int):
    try:
        data = request.get_json() or {}
        qty = require_int(data, "qty")

        item = cart_service.update_quantity(g.cashier_id, cart_item_id, qty)
        return jsonify({"item": item.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/items/<int:cart_item_id>")
@require_cashier
def remove_item_route(cart_item_id: int):
    try:
        cart_service.remove_item(cart_item_id, cashier_id=g.cashier_id)
        return "", 204

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/hold")
@require_cashier
def hold_route():
    """Park the active cart. Optional body: {"label": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        label = optional_str(data, "label")

        hold_id = cart_service.hold(g.cashier_id, label)
        return jsonify({"hold_id": hold_id}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to hold cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.get("/held")
@require_cashier
def list_held_route():
    try:
        held = [group.to_dict() for group in cart_service.list_held(g.cashier_id)]
        return jsonify({"held_carts": held}), 200
    except Exception:
        current_app.logger.exception("Failed to list held carts")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/held/<string:hold_id>/resume")
@require_cashier
def resume_route(hold_id: str):
    try:
        cart_service.resume(g.cashier_id, hold_id)
        return jsonify({"hold_id": hold_id, "resumed": True}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to resume held cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/held/<string:hold_id>")
@require_cashier
def clear_hold_route(hold_id: str):
    try:
        cart_service.clear_hold(g.cashier_id, hold_id)
        return "", 204

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to clear held cart")
        return jsonify({"error": "Internal server error"}), 500
