# Overview: Flask API routes for products; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import products_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _error_response(e: Exception):
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products_route():
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    products = products_service.list_products(
        include_inactive=include_inactive,
        search=request.args.get("q"),
    )
    return jsonify({"items": products, "count": len(products)}), 200


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_products_route():
    """
    Create a product, or a batch when the body is a JSON list.

    SKUs are generated when omitted.
    """
    try:
        payload = request.get_json(silent=True)
        created = products_service.create_products(payload, user_id=g.current_user.id)
        if isinstance(payload, dict):
            return jsonify({"product": created[0]}), 201
        return jsonify({"items": created, "count": len(created)}), 201
    except (ValidationError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    products = products_service.list_low_stock()
    return jsonify({"items": products, "count": len(products)}), 200


@products_bp.get("/sku/<string:sku>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_by_sku_route(sku: str):
    try:
        return jsonify({"product": products_service.get_product_by_sku(sku)}), 200
    except NotFoundError as e:
        return _error_response(e)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id, user_id=g.current_user.id)
        return jsonify({"product": product}), 200
    except NotFoundError as e:
        return _error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """Stock fields are rejected here; use /api/inventory."""
    try:
        product = products_service.update_product(
            product_id,
            request.get_json(silent=True),
            user_id=g.current_user.id,
        )
        return jsonify({"product": product}), 200
    except (ValidationError, ConflictError, NotFoundError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Hard delete without history, deactivate otherwise."""
    try:
        result = products_service.delete_product(product_id, user_id=g.current_user.id)
        return jsonify(result), 200
    except NotFoundError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/reactivate")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def reactivate_product_route(product_id: int):
    try:
        product = products_service.reactivate_product(product_id, user_id=g.current_user.id)
        return jsonify({"product": product}), 200
    except (ConflictError, NotFoundError) as e:
        return _error_response(e)


@products_bp.get("/<int:product_id>/deletability")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def deletability_route(product_id: int):
    try:
        return jsonify(products_service.get_deletability(product_id)), 200
    except NotFoundError as e:
        return _error_response(e)
