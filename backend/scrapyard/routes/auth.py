# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API Routes

WHY: Sign in, sign up and password recovery for the store's single active
identity, plus step-up verification for sensitive actions.

DESIGN:
- Login and signup are public; everything else needs the active identity
- Step-up verification never changes the active identity; it only tells
  the caller whether another user approved the action
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import get_store
from ..services import (
    auth_service,
    permission_service,
    plan_service,
    subscription_service,
    tenant_service,
)
from ..store import ConcurrencyConflictError
from ..decorators import require_auth
from .responses import result_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(store) -> dict:
    user = store.current_user
    company = tenant_service.current_company(store)
    session = tenant_service.current_session(store)
    return {
        "user": user.to_public_dict(include_logs=False) if user else None,
        "company": company.to_dict() if company else None,
        "is_trial": bool(company and subscription_service.is_on_trial(company, store.now())),
        "permissions": sorted(permission_service.current_permissions(store)),
        "current_session": session.to_dict() if session else None,
    }


@auth_bp.post("/login")
def login_route():
    """
    Sign in.

    Request body:
    {
        "email": "owner@yard.example",
        "password": "secret"
    }
    """
    try:
        data = request.get_json() or {}
        store = get_store()
        result = auth_service.login(store, data.get("email", ""), data.get("password", ""))
        if not result.success:
            return result_response(result)
        return result_response(result, _session_payload(store))

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    try:
        auth_service.logout(get_store())
        return jsonify({"message": "Signed out."}), 200
    except Exception:
        current_app.logger.exception("Logout failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(_session_payload(g.store)), 200


@auth_bp.get("/plans")
def plans_route():
    """Public plan catalogue for the signup page."""
    plans = plan_service.list_plans(get_store())
    return jsonify({"plans": [plan.to_dict() for plan in plans]}), 200


@auth_bp.post("/register-company")
def register_company_route():
    """
    Self-service signup. Creates the company on a trial and its owner.

    Request body:
    {
        "company_name": "Yard Ltd",
        "admin_name": "Jane",
        "email": "jane@yard.example",
        "password": "secret1",
        "document": "12.345.678/0001-90",   (optional)
        "phone": "+55 11 99999-0000",       (optional)
        "plan": "professional",             (optional)
        "billing_cycle": "monthly"          (optional)
    }
    """
    try:
        data = request.get_json() or {}
        result = subscription_service.register_company(
            get_store(),
            company_name=data.get("company_name", ""),
            admin_name=data.get("admin_name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            document=data.get("document", ""),
            phone=data.get("phone", ""),
            plan=data.get("plan", "professional"),
            billing_cycle=data.get("billing_cycle", "monthly"),
        )
        if not result.success:
            return result_response(result)
        return result_response(result, {
            "company": result.data["company"].to_dict(),
            "user": result.data["user"].to_public_dict(include_logs=False),
        }, success_status=201)

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Company registration failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/password-reset/request")
def request_reset_route():
    """
    Issue a reset token.

    Delivery (email, SMS) is outside this service; the token is returned
    to the caller, which is responsible for sending it.
    """
    try:
        data = request.get_json() or {}
        result = auth_service.request_password_reset(get_store(), data.get("email", ""))
        if not result.success:
            return result_response(result)
        return result_response(result, {"reset_token": result.data})
    except Exception:
        current_app.logger.exception("Password reset request failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/password-reset/complete")
def complete_reset_route():
    try:
        data = request.get_json() or {}
        result = auth_service.complete_password_reset(
            get_store(), data.get("token", ""), data.get("password", "")
        )
        return result_response(result)
    except Exception:
        current_app.logger.exception("Password reset failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/verify")
@require_auth
def verify_authorization_route():
    """
    Step-up verification by another (or the same) user.

    Request body:
    {
        "user_id": "...",
        "password": "...",
        "capability": "delete_order",     (optional)
        "action": "Orders",               (optional, logged on approval)
        "details": "Deleted order #1a2b"  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        authorizer = permission_service.verify_authorization(
            g.store,
            data.get("user_id", ""),
            data.get("password", ""),
            data.get("capability"),
        )
        if authorizer is None:
            return jsonify({"authorized": False}), 403

        if data.get("action"):
            permission_service.log_master_action(
                g.store, data["action"], data.get("details", ""), authorizer.id
            )

        return jsonify({
            "authorized": True,
            "authorizer": authorizer.to_public_dict(include_logs=False),
        }), 200

    except Exception:
        current_app.logger.exception("Step-up verification failed")
        return jsonify({"error": "Internal server error"}), 500
