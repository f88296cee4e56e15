# Overview: Flask API routes for cash register operations; parses input and returns JSON responses.

"""
Cash Register API Routes

DESIGN:
- One open session per company; open/close need manage_cashier
- Manual entries and withdrawals are step-up actions: a caller without
  approve_manual_transaction must name an authorizer who has it
- Every approved manual movement is logged against the authorizer
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import permission_service, register_service, tenant_service
from ..store import TRANSACTIONS, USERS, ConcurrencyConflictError
from ..decorators import require_auth, require_permission


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.get("/current")
@require_auth
def current_session_route():
    session = tenant_service.current_session(g.store)
    return jsonify({
        "session": session.to_dict() if session else None,
        "cash_balance": str(tenant_service.cash_balance(g.store)),
    }), 200


@registers_bp.post("/open")
@require_auth
@require_permission("manage_cashier")
def open_register_route():
    """Request body: {"initial_amount": "100.00"}"""
    try:
        data = request.get_json() or {}
        session = register_service.open_register(g.store, data.get("initial_amount", "0"))
        if session is None:
            return jsonify({"error": "A register is already open"}), 409
        return jsonify({"session": session.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to open register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/close")
@require_auth
@require_permission("manage_cashier")
def close_register_route():
    """
    Request body:
    {
        "counted_amounts": {"money": "250.00", "pix": "80.00"}
    }

    Methods left out are counted as zero.
    """
    try:
        data = request.get_json() or {}
        session = register_service.close_register(g.store, data.get("counted_amounts"))
        if session is None:
            return jsonify({"error": "No open register"}), 409
        return jsonify({"session": session.to_dict()}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to close register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/transactions")
@require_auth
@require_permission("manage_cashier")
def manual_transaction_route():
    """
    Manual cash entry or withdrawal.

    Request body:
    {
        "type": "out",
        "amount": "20.00",
        "description": "Coffee",
        "category": "expense",                  (optional)
        "authorizer_id": "...",                 (needed without approve_manual_transaction)
        "authorizer_password": "..."
    }
    """
    try:
        data = request.get_json() or {}

        authorizer = g.current_user
        if not permission_service.check_permission(g.store, "approve_manual_transaction"):
            authorizer = permission_service.verify_authorization(
                g.store,
                data.get("authorizer_id", ""),
                data.get("authorizer_password", ""),
                "approve_manual_transaction",
            )
            if authorizer is None:
                return jsonify({
                    "error": "Authorization required",
                    "required_permission": "approve_manual_transaction",
                }), 403

        # Ledger entry and the authorizer's audit entry commit together
        with g.store.mutation(TRANSACTIONS, USERS):
            transaction = register_service.add_manual_transaction(
                g.store,
                data.get("type", ""),
                data.get("amount"),
                data.get("description", ""),
                data.get("category"),
            )
            if transaction is not None and authorizer.id != g.current_user.id:
                permission_service.log_master_action(
                    g.store,
                    "Cash",
                    f"Approved manual {transaction.type.value}: {transaction.amount:.2f}",
                    authorizer.id,
                )
        if transaction is None:
            return jsonify({"error": "No open register"}), 409
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to record manual transaction")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/transactions")
@require_auth
def list_transactions_route():
    """Ledger of the caller's company, newest first. ?session_id=..."""
    transactions = tenant_service.visible_transactions(g.store)
    session_id = request.args.get("session_id")
    if session_id:
        transactions = [t for t in transactions if t.session_id == session_id]
    transactions = sorted(transactions, key=lambda t: t.created_at, reverse=True)
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@registers_bp.get("/sessions")
@require_auth
def list_sessions_route():
    sessions = sorted(
        tenant_service.visible_cash_sessions(g.store), key=lambda s: s.opened_at, reverse=True
    )
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200


@registers_bp.get("/sessions/<session_id>/summary")
@require_auth
def session_summary_route(session_id: str):
    summary = register_service.session_summary(g.store, session_id)
    if summary is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify(summary), 200
