# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission("view_dashboard")
def dashboard_route():
    return jsonify(reporting_service.dashboard(g.store)), 200


@reports_bp.get("/orders")
@require_auth
@require_permission("view_reports")
def order_totals_route():
    """Query params: start, end (ISO-8601, optional)"""
    try:
        report = reporting_service.order_totals(
            g.store, request.args.get("start"), request.args.get("end")
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200


@reports_bp.get("/inventory")
@require_auth
@require_permission("view_reports")
def inventory_valuation_route():
    return jsonify(reporting_service.inventory_valuation(g.store)), 200


@reports_bp.get("/cash-flow")
@require_auth
@require_permission("view_financial_reports")
def cash_flow_route():
    """Query params: start, end (ISO-8601), session_id (all optional)"""
    try:
        report = reporting_service.cash_flow(
            g.store,
            request.args.get("start"),
            request.args.get("end"),
            request.args.get("session_id"),
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(report), 200
