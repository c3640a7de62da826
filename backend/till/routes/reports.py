from flask import Blueprint, current_app, g, jsonify, request

from till.decorators import CLOSING_ROLES, require_auth, require_role
from till.services import report_service
from till.validation import ValidationError, coerce_date, coerce_int, parse_report_scope


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/x")
@require_auth
def x_report():
    """Preview totals of the open sales for ?date=YYYY-MM-DD[&terminalId=]."""
    try:
        business_date, terminal_id = parse_report_scope(request.args)
        report = report_service.preview_report(business_date, terminal_id)
        return jsonify(report), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build X report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/z")
@require_auth
@require_role(*CLOSING_ROLES)
def z_report():
    """
    Close the day (optionally one terminal) under a new Z report.

    Body: {date, terminalId?}
    Returns 201 with the snapshot; 400 when nothing is open; 409 when a
    concurrent close won the race.
    """
    try:
        business_date, terminal_id = parse_report_scope(request.get_json(silent=True))
        report = report_service.close_report(
            business_date,
            terminal_id,
            closed_by=g.current_user_id,
        )
        return jsonify(report.to_dict()), 201
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except report_service.NothingToClose as exc:
        return jsonify({"error": str(exc), "code": exc.code}), 400
    except report_service.ConcurrentCloseDetected as exc:
        return jsonify({"error": str(exc), "code": exc.code}), 409
    except report_service.ReportPersistenceFailed as exc:
        return jsonify({"error": str(exc), "code": exc.code}), 500
    except Exception:
        current_app.logger.exception("Failed to close Z report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/z")
@require_auth
def list_z_reports():
    """
    Closed reports, newest first.

    Query: id (single report), date, terminalId, page, pageSize
    """
    try:
        report_id = request.args.get("id")
        if report_id is not None:
            report = report_service.get_report(coerce_int("id", report_id))
            return jsonify(report.to_dict()), 200

        business_date = coerce_date("date", request.args.get("date"))
        terminal_id = (request.args.get("terminalId") or "").strip() or None
        page = coerce_int("page", request.args.get("page", "1"))
        page_size = request.args.get("pageSize")
        page_size = coerce_int("pageSize", page_size) if page_size is not None else None

        reports = report_service.list_reports(
            business_date=business_date,
            terminal_id=terminal_id,
            page=page,
            page_size=page_size,
            max_page_size=current_app.config["REPORT_PAGE_SIZE"],
        )
        return jsonify({"items": [r.to_dict() for r in reports], "page": max(page, 1)}), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except report_service.ReportNotFound as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to list Z reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/z/<int:report_id>")
@require_auth
def get_z_report(report_id: int):
    try:
        report = report_service.get_report(report_id)
        return jsonify(report.to_dict()), 200
    except report_service.ReportNotFound as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to fetch Z report %s", report_id)
        return jsonify({"error": "Internal server error"}), 500
