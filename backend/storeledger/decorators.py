# Overview: Request decorators establishing store (tenant) context for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .extensions import db
from .models import Store
from .models.tenancy import PLAN_PREMIUM


def _store_from_header():
    raw = request.headers.get(current_app.config["TENANT_HEADER"], "").strip()
    if not raw.isdigit():
        return None
    return db.session.get(Store, int(raw))


def require_store(f):
    """
    Establish tenant context from the upstream-resolved store header.

    Sets the following Flask g attributes:
    - g.store: The Store object
    - g.store_id: Its id; every service call is scoped by it
    - g.actor: Acting user as forwarded upstream (may be None)

    Returns 401 for a missing or unknown store and 403 when the store is
    deactivated or its subscription has ended.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store = _store_from_header()
        if store is None:
            return jsonify({"error": "unauthorized", "message": "Store context required"}), 401
        if not store.is_active:
            return jsonify({"error": "forbidden", "message": "Store is deactivated"}), 403
        if store.subscription_expired():
            return jsonify({"error": "forbidden", "message": "Store subscription has expired"}), 403

        g.store = store
        g.store_id = store.id
        g.actor = request.headers.get(current_app.config["ACTOR_HEADER"]) or None

        return f(*args, **kwargs)

    return decorated_function


def require_premium(f):
    """
    Restrict a route to stores on the PREMIUM plan.

    Must be applied AFTER @require_store.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "store"):
            return jsonify({"error": "unauthorized", "message": "Store context required"}), 401
        if g.store.plan != PLAN_PREMIUM:
            return jsonify({"error": "forbidden", "message": "Feature requires the PREMIUM plan"}), 403
        return f(*args, **kwargs)

    return decorated_function


def resolve_shop_store(f):
    """Public storefront routes: resolve the store from the <slug> URL part."""
    @wraps(f)
    def decorated_function(slug, *args, **kwargs):
        store = db.session.query(Store).filter_by(slug=slug).first()
        if store is None or not store.is_active:
            return jsonify({"error": "not_found", "message": "Store not found"}), 404
        g.store = store
        g.store_id = store.id
        g.actor = None
        return f(*args, **kwargs)

    return decorated_function
