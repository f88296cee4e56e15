# Overview: Flask API routes for users operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS, get_permissions_by_category
from ..services import audit_service, auth_service, tenant_service
from ..store import ConcurrencyConflictError
from ..decorators import require_auth, require_permission
from .responses import result_response


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/")
@users_bp.get("")
@require_auth
def list_users_route():
    users = tenant_service.visible_users(g.store)
    return jsonify({"users": [u.to_public_dict(include_logs=False) for u in users]}), 200


@users_bp.post("/")
@users_bp.post("")
@require_auth
@require_permission("manage_users")
def create_user_route():
    """
    Create a user in the caller's company.

    Request body:
    {
        "name": "Carl",
        "email": "carl@yard.example",
        "password": "secret1",
        "role": "cashier",
        "permissions": {"view_reports": false}   (optional overrides)
    }
    """
    try:
        data = request.get_json() or {}
        result = auth_service.add_user(
            g.store,
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role", ""),
            permissions=data.get("permissions"),
        )
        if not result.success:
            return result_response(result)
        return result_response(result, {"user": result.data.to_public_dict(include_logs=False)}, 201)

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<user_id>")
@require_auth
@require_permission("edit_user")
def update_user_route(user_id: str):
    try:
        data = request.get_json() or {}
        result = auth_service.update_user(g.store, user_id, data)
        if not result.success:
            return result_response(result)
        return result_response(result, {"user": result.data.to_public_dict(include_logs=False)})

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<user_id>")
@require_auth
@require_permission("delete_user")
def delete_user_route(user_id: str):
    try:
        return result_response(auth_service.delete_user(g.store, user_id))
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/audit")
@require_auth
@require_permission("view_audit")
def audit_route():
    """Action history of every visible user, newest first. ?limit=N"""
    limit = request.args.get("limit", type=int)
    return jsonify({"entries": audit_service.list_audit_entries(g.store, limit=limit)}), 200


@users_bp.get("/permissions")
@require_auth
def permission_catalogue_route():
    """Capability catalogue and role defaults, for the user editor. ?category=CASHIER"""
    category_filter = request.args.get("category")
    definitions = (
        get_permissions_by_category(category_filter) if category_filter else PERMISSION_DEFINITIONS
    )
    return jsonify({
        "permissions": [
            {"code": code, "name": name, "description": description, "category": category}
            for code, name, description, category in definitions
        ],
        "role_defaults": {
            role.value: sorted(codes) for role, codes in DEFAULT_ROLE_PERMISSIONS.items()
        },
    }), 200
