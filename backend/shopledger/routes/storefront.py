# backend/shopledger/routes/storefront.py
"""
Public storefront routes.

No identity headers: the tenant is resolved from the slug in the URL, and only
active tenants and active products are visible or can take orders.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import order_service, storefront_service
from ..validation import parse_order_payload


storefront_bp = Blueprint("storefront", __name__, url_prefix="/api/storefront")


def _public_product(product) -> dict:
    data = product.to_dict()
    # Internal fields stay private to the tenant
    data.pop("cost_price_cents", None)
    data.pop("version_id", None)
    return data


@storefront_bp.get("/<slug>")
def store_info_route(slug: str):
    try:
        tenant = storefront_service.get_store_info(slug)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"store": {"name": tenant.name, "slug": tenant.slug}}), 200


@storefront_bp.get("/<slug>/products")
def list_products_route(slug: str):
    """Orderable catalog. Optional ?in_stock=true hides products at stock 0."""
    in_stock_only = request.args.get("in_stock", "false").lower() == "true"

    try:
        products = storefront_service.list_products(slug, in_stock_only=in_stock_only)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"products": [_public_product(p) for p in products]}), 200


@storefront_bp.get("/<slug>/products/<int:product_id>")
def get_product_route(slug: str, product_id: int):
    try:
        product = storefront_service.get_product(slug, product_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"product": _public_product(product)}), 200


@storefront_bp.post("/<slug>/orders")
def create_order_route(slug: str):
    """
    Place an order.

    Body: {"customer_name", "customer_email", "customer_phone"?,
           "items": [{"product_id": int, "quantity": int}, ...]}
    """
    payload = request.get_json(silent=True) or {}

    try:
        customer, items = parse_order_payload(payload)
        order = order_service.create_order(slug, customer, items)
        return jsonify({"order": order.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create storefront order")
        return jsonify({"error": "Internal server error"}), 500
