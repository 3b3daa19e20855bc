# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/retailpos/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, reporting_service
from ..services.sales_service import SaleError
from ..services.reporting_service import ReportAccessError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, require_any_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_error_response(e: SaleError):
    if isinstance(e, sales_service.SaleInternalError):
        return jsonify({"error": str(e)}), 500
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _report_filter() -> dict:
    return {
        "acting_user_role": g.current_user.role,
        "acting_user_id": g.current_user.id,
        "target_user_id": request.args.get("user_id", type=int),
        "start": request.args.get("start_date") or request.args.get("start"),
        "end": request.args.get("end_date") or request.args.get("end"),
    }


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a sale (items, stock decrement, OUT movements) in one transaction.

    Body: {"items": [{"product_id", "quantity", "unit_price_cents"?,
    "discount_percent"?}], "tax_included"?: bool, "tax_rate"?: "0.19"}

    Requires: CREATE_SALE permission
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(
            items=data.get("items"),
            acting_user_id=g.current_user.id,
            tax_included=data.get("tax_included", False),
            tax_rate=data.get("tax_rate"),
        )
        return jsonify({"folio": sale["id"], "sale": sale}), 201

    except SaleError as e:
        return _sale_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_any_permission("VIEW_OWN_SALES", "VIEW_ALL_SALES")
def list_sales_route():
    """
    List sales, newest first.

    Query: user_id (ADMIN/MANAGER only), start_date, end_date.
    EMPLOYEE callers always get their own sales.
    """
    try:
        return jsonify({"sales": reporting_service.list_sales(**_report_filter())}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/summary")
@require_auth
@require_any_permission("VIEW_OWN_SALES", "VIEW_ALL_SALES")
def sales_summary_route():
    try:
        return jsonify({"summary": reporting_service.summarize_sales(**_report_filter())}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to summarize sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/stats")
@require_auth
@require_permission("VIEW_SALES_REPORTS")
def sales_stats_route():
    try:
        stats = reporting_service.get_sales_stats(acting_user_role=g.current_user.role)
        return jsonify(stats), 200
    except ReportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to compute sales stats")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_any_permission("VIEW_OWN_SALES", "VIEW_ALL_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = reporting_service.get_visible_sale(
            sale_id,
            acting_user_role=g.current_user.role,
            acting_user_id=g.current_user.id,
        )
        return jsonify({"sale": sale}), 200
    except SaleError as e:
        return _sale_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500
