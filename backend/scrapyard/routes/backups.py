# Overview: Flask API routes for backup and restore; parses input and returns JSON responses.

"""
Backup API Routes

DESIGN:
- Export, manual backup and restore need manage_settings
- Platform operators always work on the whole system (global dump)
- A rejected restore changes nothing and answers 400
"""

from flask import Blueprint, Response, request, jsonify, g, current_app

from ..services import backup_service
from ..store import ConcurrencyConflictError
from ..decorators import require_auth, require_permission


backups_bp = Blueprint("backups", __name__, url_prefix="/api/backups")


@backups_bp.get("/export")
@require_auth
@require_permission("manage_settings")
def export_route():
    """Download the caller's snapshot as a JSON attachment."""
    export = backup_service.export_backup(g.store)
    if export is None:
        return jsonify({"error": "Nothing to export"}), 404
    return Response(
        export.content,
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@backups_bp.post("/manual")
@require_auth
@require_permission("manage_settings")
def manual_backup_route():
    try:
        if not backup_service.trigger_manual_backup(g.store):
            return jsonify({
                "error": "Manual backups are not available on this plan",
            }), 403
        history = backup_service.get_backup_history(g.store)
        return jsonify({
            "message": "Restore point created.",
            "backup": history[0].to_dict() if history else None,
        }), 201

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Manual backup failed")
        return jsonify({"error": "Internal server error"}), 500


@backups_bp.post("/auto")
@require_auth
def auto_backup_route():
    """Take today's automatic backup if it is due; a no-op otherwise."""
    try:
        log = backup_service.run_auto_backup(g.store)
        return jsonify({"created": log is not None, "backup": log.to_dict() if log else None}), 200

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Automatic backup failed")
        return jsonify({"error": "Internal server error"}), 500


@backups_bp.post("/import")
@require_auth
@require_permission("manage_settings")
def import_route():
    """
    Restore a snapshot.

    Accepts the snapshot as the JSON body, or as an uploaded file in the
    "file" form field.
    """
    try:
        upload = request.files.get("file")
        if upload is not None:
            payload = upload.read().decode("utf-8", errors="replace")
        else:
            payload = request.get_json(silent=True)
            if payload is None:
                return jsonify({"error": "Snapshot body required"}), 400

        if not backup_service.import_backup(g.store, payload):
            return jsonify({"error": "Snapshot rejected"}), 400
        return jsonify({"message": "Snapshot restored."}), 200

    except ConcurrencyConflictError:
        return jsonify({"error": "Data changed concurrently, retry"}), 409
    except Exception:
        current_app.logger.exception("Restore failed")
        return jsonify({"error": "Internal server error"}), 500


@backups_bp.get("/history")
@require_auth
def history_route():
    logs = backup_service.get_backup_history(g.store)
    return jsonify({"history": [log.to_dict() for log in logs]}), 200

