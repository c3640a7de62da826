# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""Sales API routes"""

from flask import Blueprint, current_app, request, jsonify, g

from ..services import sales_service
from ..services.sales_service import SaleError, PersistenceFailed
from ..decorators import require_auth
from ..validation import ValidationError, parse_sale_request
from ..time_utils import today_in


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_error_response(exc: SaleError):
    return jsonify({"error": str(exc), "code": exc.code, "details": exc.details}), 400


@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Create a settled sale from a cart and its tenders.

    Body:
        terminalId, cashierId (defaults to caller), businessDate (optional),
        items: [{productId, qty, unitCentsOverride?}],
        payments: [{method | methodId, amountCents | amount}]

    Returns 201 {id, total_cents, paid_cents, change_cents}.
    """
    try:
        payload = request.get_json(silent=True)
        sale_request = parse_sale_request(
            payload,
            default_cashier_id=g.current_user_id,
            default_business_date=today_in(current_app.config["BUSINESS_TIMEZONE"]),
        )

        sale = sales_service.create_sale(
            sale_request.items,
            sale_request.tenders,
            sale_request.context,
        )

        return jsonify({
            "id": sale.id,
            "total_cents": sale.total_cents,
            "paid_cents": sale.paid_cents,
            "change_cents": sale.change_cents,
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceFailed as e:
        return jsonify({"error": str(e), "code": e.code}), 500
    except SaleError as e:
        return _sale_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale with its lines and payments."""
    try:
        sale = sales_service.get_sale(sale_id)
        if not sale:
            return jsonify({"error": "Sale not found"}), 404

        return jsonify({"sale": sale.to_dict(include_children=True)}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
