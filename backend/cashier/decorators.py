# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


CASHIER_HEADER = "X-Cashier-Id"


def require_cashier(f):
    """
    Resolve the calling cashier and expose it as g.cashier_id.

    Identity is established upstream (login lives outside this service);
    this only checks that the forwarded id names an active user. Routes pass
    g.cashier_id explicitly into every service call.

    Returns 401 if the header is missing, malformed, or names no active user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(CASHIER_HEADER, "").strip()
        if not raw.isdigit():
            return jsonify({"error": "Cashier identity required"}), 401

        user = db.session.get(User, int(raw))
        if not user or not user.is_active:
            return jsonify({"error": "Unknown or inactive cashier"}), 401

        g.cashier_id = user.id
        return f(*args, **kwargs)

    return decorated_function
