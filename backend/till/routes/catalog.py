# Overview: Read-only catalog routes the register uses to find products and tenders.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import catalog_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/products")
@require_auth
def list_products_route():
    """
    Search active products.

    Query: q (name / sku / barcode contains), sku, barcode, limit
    """
    try:
        limit = request.args.get("limit", type=int)
        products = catalog_service.search_products(
            query=(request.args.get("q") or "").strip() or None,
            sku=(request.args.get("sku") or "").strip() or None,
            barcode=(request.args.get("barcode") or "").strip() or None,
            limit=limit,
            max_limit=current_app.config["PRODUCT_SEARCH_LIMIT"],
        )
        return jsonify({"items": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/payment-methods")
@require_auth
def list_payment_methods_route():
    try:
        methods = catalog_service.list_active_payment_methods()
        return jsonify({"items": [m.to_dict() for m in methods]}), 200
    except Exception:
        current_app.logger.exception("Failed to list payment methods")
        return jsonify({"error": "Internal server error"}), 500
