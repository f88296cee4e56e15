# Overview: Maps service OperationResult values to JSON responses.

from flask import jsonify

from ..services.results import OperationResult


# Failure reason -> HTTP status
REASON_STATUS = {
    "invalid_credentials": 401,
    "blocked": 402,
    "expired": 402,
    "company_not_found": 404,
    "permission_denied": 403,
    "user_limit_reached": 403,
    "not_found": 404,
    "email_not_found": 404,
    "validation_error": 400,
    "weak_password": 400,
    "token_invalid": 400,
    "token_expired": 410,
    "email_in_use": 409,
    "plan_exists": 409,
    "plan_in_use": 409,
    "not_pending": 409,
    "cannot_delete_self": 409,
    "no_open_session": 409,
    "insufficient_stock": 409,
    "no_company": 403,
}


def result_response(result: OperationResult, payload: dict | None = None, success_status: int = 200):
    """Success -> payload (plus message); failure -> {"error", "reason", "is_blocked"?}."""
    if result.success:
        body = {"message": result.message}
        body.update(payload or {})
        return jsonify(body), success_status

    body = {"error": result.message, "reason": result.reason}
    if result.is_blocked:
        body["is_blocked"] = True
    return jsonify(body), REASON_STATUS.get(result.reason, 400)
