# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import jsonify, g

from .domain import CompanyStatus, Role
from .extensions import get_store
from .services import permission_service, tenant_service
from .services.subscription_service import check_company


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Require the store's active identity and pass the subscription gate.

    Sets the following Flask g attributes:
    - g.store: the ScrapyardStore of this app
    - g.current_user: the acting User
    - g.company: the acting tenant's Company (None for platform operators)

    Returns 401 without an identity, 402 with is_blocked when the tenant is
    blocked, suspended or has just expired. Platform operators are never
    gated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store = get_store()
        user = store.current_user

        if user is None:
            return jsonify({"error": "Authentication required"}), 401

        company = tenant_service.current_company(store)
        if user.role is not Role.SUPER_ADMIN and user.company_id:
            if company is None:
                return jsonify({"error": "Company not found"}), 401
            if company.status in (CompanyStatus.BLOCKED, CompanyStatus.SUSPENDED) or check_company(store, company):
                return jsonify({
                    "error": "Access blocked. Subscription expired or suspended.",
                    "is_blocked": True,
                }), 402

        g.store = store
        g.current_user = user
        g.company = company

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a capability of the acting identity. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.check_permission(g.store, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_platform_operator(f):
    """Restrict an endpoint to platform operators (super_admin)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        if g.current_user.role is not Role.SUPER_ADMIN:
            return jsonify({"error": "Platform operator access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
