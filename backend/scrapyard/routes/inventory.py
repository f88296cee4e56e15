# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory and Partner API Routes

SECURITY:
- view_inventory to read products
- manage_inventory / edit_product / delete_product for product writes
- adjust_stock for manual counts
- manage_partners for partner writes
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service, tenant_service
from ..store import ConcurrencyConflictError
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _no_company():
    return jsonify({"error": "No company in session"}), 403


# =============================================================================
# PRODUCTS
# =============================================================================

@inventory_bp.get("/products")
@require_auth
@require_permission("view_inventory")
def list_products_route():
    products = tenant_service.visible_products(g.store)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@inventory_bp.post("/products")
@require_auth
@require_permission("manage_inventory")
def create_product_route():
    """
    Request body:
    {
        "name": "Copper wire",
        "buy_price": "32.00",
        "sell_price": "38.50",
        "unit": "kg",          (optional, kg | un)
        "stock": "0",          (optional)
        "min_stock": "50",     (optional)
        "max_stock": "2000"    (optional)
    }
    """
    try:
        product = inventory_service.add_product(g.store, request.get_json() or {})
        if product is None:
            return _no_company()
        return jsonify({"product": product.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/products/<product_id>")
@require_auth
@require_permission("edit_product")
def update_product_route(product_id: str):
    try:
        product = inventory_service.update_product(g.store, product_id, request.get_json() or {})
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"product": product.to_dict()}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/products/<product_id>")
@require_auth
@require_permission("delete_product")
def delete_product_route(product_id: str):
    try:
        if not inventory_service.delete_product(g.store, product_id):
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"message": "Product deleted."}), 200
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/products/<product_id>/adjust")
@require_auth
@require_permission("adjust_stock")
def adjust_stock_route(product_id: str):
    """Request body: {"new_quantity": "120.5", "reason": "Monthly count"}"""
    try:
        data = request.get_json() or {}
        if data.get("new_quantity") is None:
            return jsonify({"error": "new_quantity required"}), 400
        product = inventory_service.adjust_stock(
            g.store, product_id, data["new_quantity"], data.get("reason", "")
        )
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"product": product.to_dict()}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/products/batch-adjust")
@require_auth
@require_permission("adjust_stock")
def batch_adjust_route():
    """Request body: {"adjustments": [{"id": "...", "new_quantity": "10", "reason": "..."}]}"""
    try:
        data = request.get_json() or {}
        adjustments = data.get("adjustments")
        if not isinstance(adjustments, list):
            return jsonify({"error": "adjustments must be a list"}), 400
        changed = inventory_service.batch_adjust_stock(g.store, adjustments)
        return jsonify({"adjusted": changed}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to apply batch count")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PARTNERS
# =============================================================================

@inventory_bp.get("/partners")
@require_auth
def list_partners_route():
    partner_type = request.args.get("type")
    partners = tenant_service.visible_partners(g.store)
    if partner_type:
        partners = [p for p in partners if p.type.value == partner_type]
    return jsonify({"partners": [p.to_dict() for p in partners]}), 200


@inventory_bp.post("/partners")
@require_auth
@require_permission("manage_partners")
def create_partner_route():
    """Request body: {"name", "type": "supplier" | "customer", "document", "phone", "address"}"""
    try:
        partner = inventory_service.add_partner(g.store, request.get_json() or {})
        if partner is None:
            return _no_company()
        return jsonify({"partner": partner.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to create partner")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/partners/<partner_id>")
@require_auth
@require_permission("manage_partners")
def update_partner_route(partner_id: str):
    try:
        partner = inventory_service.update_partner(g.store, partner_id, request.get_json() or {})
        if partner is None:
            return jsonify({"error": "Partner not found"}), 404
        return jsonify({"partner": partner.to_dict()}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to update partner")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/partners/<partner_id>")
@require_auth
@require_permission("manage_partners")
def delete_partner_route(partner_id: str):
    try:
        if not inventory_service.delete_partner(g.store, partner_id):
            return jsonify({"error": "Partner not found"}), 404
        return jsonify({"message": "Partner deleted."}), 200
    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Failed to delete partner")
        return jsonify({"error": "Internal server error"}), 500
