# Overview: Flask API routes for stock receipts, adjustments and the movement ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service
from ..validation import ValidationError, ConflictError, NotFoundError, coerce_int
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _error_response(e: Exception):
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


@inventory_bp.post("/<int:product_id>/receive")
@require_auth
@require_permission("MANAGE_STOCK")
def receive_route(product_id: int):
    """Body: {"quantity": int > 0, "note"?: str}"""
    try:
        data = request.get_json(silent=True) or {}
        result = inventory_service.receive_stock(
            product_id=product_id,
            quantity=coerce_int(data.get("quantity"), "quantity"),
            user_id=g.current_user.id,
            note=data.get("note"),
        )
        return jsonify(result), 201
    except (ValidationError, ConflictError, NotFoundError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/adjust")
@require_auth
@require_permission("MANAGE_STOCK")
def adjust_route(product_id: int):
    """Body: {"quantity_delta": non-zero int, "note"?: str}"""
    try:
        data = request.get_json(silent=True) or {}
        result = inventory_service.adjust_stock(
            product_id=product_id,
            quantity_delta=coerce_int(data.get("quantity_delta"), "quantity_delta"),
            user_id=g.current_user.id,
            note=data.get("note"),
        )
        return jsonify(result), 201
    except (ValidationError, ConflictError, NotFoundError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:product_id>/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def movements_route(product_id: int):
    try:
        movements = inventory_service.list_movements(
            product_id=product_id,
            limit=request.args.get("limit", default=200, type=int),
        )
        return jsonify({
            "movements": movements,
            "ledger_quantity": inventory_service.ledger_quantity(product_id),
        }), 200
    except (ValidationError, NotFoundError) as e:
        return _error_response(e)


@inventory_bp.get("/ledger-check")
@require_auth
@require_permission("MANAGE_STOCK")
def ledger_check_route():
    drift = inventory_service.find_ledger_drift()
    return jsonify({"ok": not drift, "drift": drift}), 200
