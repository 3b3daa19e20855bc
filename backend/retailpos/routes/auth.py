# Overview: Flask API routes for auth and user management.

# backend/retailpos/routes/auth.py
"""
Authentication API routes

Users are created by administrators only; there is no self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import audit_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..permissions import DEFAULT_ROLE_PERMISSIONS, get_role_permissions, permissions_by_category
from ..decorators import require_auth, require_permission, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be sent as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        audit_service.record(user.id, audit_service.LOGIN, f"Login from {request.remote_addr}")

        return jsonify({
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
            "user": user.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(bearer_token(), reason="User logout")
        audit_service.record(g.current_user.id, audit_service.LOGOUT)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Logout failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
        "permission_groups": permissions_by_category(get_role_permissions(user.role)),
    }), 200


@auth_bp.get("/users")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in auth_service.list_users()]}), 200


@auth_bp.post("/users")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """Create a user. Requires: MANAGE_USERS (ADMIN)."""
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
        )
        audit_service.record(g.current_user.id, audit_service.CREATE_USER, f"{user.email} ({user.role})")
        return jsonify({"user": user.to_dict()}), 201

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.put("/users/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if user_id == g.current_user.id and data.get("is_active") is False:
            return jsonify({"error": "You cannot deactivate your own account"}), 400

        user = auth_service.update_user(user_id, data)
        audit_service.record(
            g.current_user.id,
            audit_service.UPDATE_USER,
            f"{user.email}: {', '.join(sorted(data))}",
        )
        return jsonify({"user": user.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.delete("/users/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def delete_user_route(user_id: int):
    """Delete an account without history. Requires: MANAGE_USERS (ADMIN)."""
    try:
        if user_id == g.current_user.id:
            return jsonify({"error": "You cannot delete your own account"}), 400

        deleted = auth_service.delete_user(user_id)
        audit_service.record(
            g.current_user.id,
            audit_service.DELETE_USER,
            f"{deleted['email']} ({deleted['name']})",
        )
        return jsonify({"message": "User deleted"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/permissions")
@require_auth
@require_permission("VIEW_USERS")
def permissions_route():
    """Permission catalogue and the fixed grant of every role."""
    return jsonify({
        "categories": permissions_by_category(),
        "roles": {role: sorted(codes) for role, codes in DEFAULT_ROLE_PERMISSIONS.items()},
    }), 200
