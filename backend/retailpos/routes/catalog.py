# Overview: Flask API routes for brands, categories and suppliers.

from flask import Blueprint, request, jsonify, current_app, abort

from ..services import catalog_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _check_kind(kind: str) -> None:
    if kind not in catalog_service.KINDS:
        abort(404)


@catalog_bp.get("/<string:kind>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_route(kind: str):
    _check_kind(kind)
    return jsonify({"items": catalog_service.list_entries(kind)}), 200


@catalog_bp.post("/<string:kind>")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_route(kind: str):
    _check_kind(kind)
    try:
        entry = catalog_service.create_entry(kind, request.get_json(silent=True))
        return jsonify({"item": entry}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create %s entry", kind)
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/<string:kind>/<int:entry_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_route(kind: str, entry_id: int):
    _check_kind(kind)
    try:
        entry = catalog_service.update_entry(kind, entry_id, request.get_json(silent=True))
        return jsonify({"item": entry}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update %s entry", kind)
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/<string:kind>/<int:entry_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_route(kind: str, entry_id: int):
    _check_kind(kind)
    try:
        catalog_service.delete_entry(kind, entry_id)
        return "", 204
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete %s entry", kind)
        return jsonify({"error": "Internal server error"}), 500
