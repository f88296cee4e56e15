# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

"""
Order API Routes

DESIGN:
- Creating a buy order needs register_buy, a sell order register_sell
- Payment goes through the open register (manage_cashier)
- Cancel needs edit_order; hard delete needs delete_order
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import order_service, permission_service, tenant_service
from ..store import ConcurrencyConflictError
from ..decorators import require_auth, require_permission
from .responses import result_response


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _serialize_payment(data: dict) -> dict:
    return {
        "order": data["order"].to_dict(),
        "transaction": data["transaction"].to_dict(),
    }


@orders_bp.get("/")
@orders_bp.get("")
@require_auth
def list_orders_route():
    """Orders of the caller's company, newest first. ?status=pending&type=buy"""
    orders = tenant_service.visible_orders(g.store)
    status = request.args.get("status")
    order_type = request.args.get("type")
    if status:
        orders = [o for o in orders if o.status.value == status]
    if order_type:
        orders = [o for o in orders if o.type.value == order_type]
    orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.post("/")
@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Request body:
    {
        "type": "buy",
        "partner_id": "...",
        "items": [{"product_id": "...", "quantity": "10", "price_at_moment": "5.00"}],
        "total_value": "50.00"   (optional, defaults to sum of items)
    }
    """
    try:
        data = request.get_json() or {}
        capability = "register_buy" if data.get("type") == "buy" else "register_sell"
        if not permission_service.check_permission(g.store, capability):
            return jsonify({"error": "Permission denied", "required_permission": capability}), 403

        order = order_service.create_order(
            g.store,
            data.get("type", ""),
            data.get("partner_id", ""),
            data.get("items") or [],
            data.get("total_value"),
        )
        if order is None:
            return jsonify({"error": "No company in session"}), 403
        return jsonify({"order": order.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<order_id>")
@require_auth
@require_permission("edit_order")
def update_order_route(order_id: str):
    try:
        result = order_service.update_order(g.store, order_id, request.get_json() or {})
        if not result.success:
            return result_response(result)
        return result_response(result, {"order": result.data.to_dict()})

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/pay")
@require_auth
@require_permission("manage_cashier")
def pay_order_route(order_id: str):
    """Request body: {"method": "money" | "pix" | "debit" | "credit" | "ticket" | "transfer"}"""
    try:
        data = request.get_json() or {}
        result = order_service.process_order_payment(g.store, order_id, data.get("method", "money"))
        if not result.success:
            return result_response(result)
        return result_response(result, _serialize_payment(result.data))

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/cancel")
@require_auth
@require_permission("edit_order")
def cancel_order_route(order_id: str):
    try:
        if not order_service.cancel_order(g.store, order_id):
            return jsonify({"error": "Order not found or not pending"}), 409
        return jsonify({"message": "Order cancelled."}), 200
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<order_id>")
@require_auth
@require_permission("delete_order")
def delete_order_route(order_id: str):
    try:
        if not order_service.delete_order(g.store, order_id):
            return jsonify({"error": "Order not found"}), 404
        return jsonify({"message": "Order deleted."}), 200
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
