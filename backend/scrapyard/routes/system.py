"""
System health endpoint.

Checks the backing database and that the entity store finished loading.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import func, select

from ..extensions import db
from ..models import StoreRecord
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        record_count = db.session.execute(select(func.count()).select_from(StoreRecord)).scalar_one()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"store_records": record_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_store_health() -> dict:
    store = current_app.extensions.get("scrapyard")
    if store is None or not store.loaded:
        return {"status": "unhealthy", "error": "Store not loaded"}
    return {
        "status": "healthy",
        "details": {
            "companies": len(store.companies),
            "users": len(store.users),
            "authenticated": store.current_user is not None,
        },
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    store_health = check_store_health()

    all_checks = [database_health, store_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "store": store_health,
        },
    }, http_status
