# Overview: Flask API routes for platform administration; parses input and returns JSON responses.

"""
Platform Admin Routes

Provides endpoints for:
- Company management (list, renew, status, edit, delete)
- Plan catalogue management
- Running the subscription lifecycle on demand

All endpoints require a platform operator (super_admin).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import plan_service, subscription_service
from ..store import ConcurrencyConflictError
from ..decorators import require_auth, require_platform_operator
from .responses import result_response


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _company_row(store, company) -> dict:
    owner = subscription_service.owner_of(store, company.id)
    row = company.to_dict()
    row["is_trial"] = subscription_service.is_on_trial(company, store.now())
    row["owner"] = owner.to_public_dict(include_logs=False) if owner else None
    return row


# =============================================================================
# COMPANIES
# =============================================================================

@admin_bp.get("/companies")
@require_auth
@require_platform_operator
def list_companies_route():
    companies = sorted(g.store.companies, key=lambda c: c.created_at, reverse=True)
    return jsonify({"companies": [_company_row(g.store, c) for c in companies]}), 200


@admin_bp.post("/companies/<company_id>/renew")
@require_auth
@require_platform_operator
def renew_company_route(company_id: str):
    """Request body: {"days": 30}"""
    try:
        data = request.get_json() or {}
        result = subscription_service.renew_subscription(g.store, company_id, data.get("days"))
        if not result.success:
            return result_response(result)
        return result_response(result, {"company": result.data.to_dict()})

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to renew subscription")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/companies/<company_id>/status")
@require_auth
@require_platform_operator
def company_status_route(company_id: str):
    """Request body: {"status": "suspended", "plan": "premium" (optional)}"""
    try:
        data = request.get_json() or {}
        result = subscription_service.update_company_status(
            g.store, company_id, data.get("status", ""), data.get("plan")
        )
        if not result.success:
            return result_response(result)
        return result_response(result, {"company": result.data.to_dict()})

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update company status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/companies/<company_id>")
@require_auth
@require_platform_operator
def update_company_route(company_id: str):
    try:
        result = subscription_service.update_company_details(
            g.store, company_id, request.get_json() or {}
        )
        if not result.success:
            return result_response(result)
        return result_response(result, {"company": result.data.to_dict()})

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update company")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/companies/<company_id>")
@require_auth
@require_platform_operator
def delete_company_route(company_id: str):
    try:
        return result_response(subscription_service.delete_company(g.store, company_id))
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete company")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/lifecycle-check")
@require_auth
@require_platform_operator
def lifecycle_check_route():
    try:
        blocked = subscription_service.run_lifecycle_checks(g.store)
        return jsonify({"blocked": blocked}), 200
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Lifecycle check failed")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PLANS
# =============================================================================

@admin_bp.post("/plans")
@require_auth
@require_platform_operator
def create_plan_route():
    """
    Request body:
    {
        "id": "enterprise",
        "name": "Enterprise",
        "price_monthly": "499.90",
        "price_annual": "4999.00",
        "max_users": 50,
        "backup_type": "both",        (optional)
        "features": ["..."]           (optional)
    }
    """
    try:
        result = plan_service.add_plan(g.store, request.get_json() or {})
        if not result.success:
            return result_response(result)
        return result_response(result, {"plan": result.data.to_dict()}, success_status=201)

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to create plan")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/plans/<plan_id>")
@require_auth
@require_platform_operator
def update_plan_route(plan_id: str):
    try:
        result = plan_service.update_plan(g.store, plan_id, request.get_json() or {})
        if not result.success:
            return result_response(result)
        return result_response(result, {"plan": result.data.to_dict()})

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update plan")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/plans/<plan_id>")
@require_auth
@require_platform_operator
def delete_plan_route(plan_id: str):
    try:
        return result_response(plan_service.delete_plan(g.store, plan_id))
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete plan")
        return jsonify({"error": "Internal server error"}), 500
