# Overview: Flask API routes for offline sync; parses input and returns JSON responses.

# backend/farmsync/routes/sync.py
"""
Sync API routes.

- POST /api/sync                  merge a client batch (all or nothing)
- GET  /api/snapshot/<user_id>    full current state for a user
- GET  /api/data/<user_id>        same as snapshot (path used by older clients)
- GET  /api/updates/<user_id>     change probe; ?since= (or ?lastUpdate=)

Store errors are logged here and reported to the caller as a generic failure.
"""
from flask import Blueprint, current_app, jsonify, request

from ..services import change_service, snapshot_service, sync_service
from ..services.entity_store import ReadFailure, SyncFailure, SyncTimeout
from ..validation import ValidationError


sync_bp = Blueprint("sync", __name__, url_prefix="/api")


@sync_bp.post("/sync")
def sync_route():
    """
    Merge a batch of offline changes.

    Body: { userId, transactions?: [...], loans?: [...], products?: [...], settings?: {...} }
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        result = sync_service.sync_batch(payload.get("userId"), payload)
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SyncTimeout:
        return jsonify({"error": "Sync timed out"}), 504
    except SyncFailure:
        return jsonify({"error": "Failed to sync data"}), 500
    except Exception:
        current_app.logger.exception("Sync error")
        return jsonify({"error": "Failed to sync data"}), 500


@sync_bp.get("/snapshot/<user_id>")
@sync_bp.get("/data/<user_id>")
def snapshot_route(user_id: str):
    try:
        return jsonify(snapshot_service.get_snapshot(user_id)), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ReadFailure:
        return jsonify({"error": "Failed to fetch data"}), 500
    except Exception:
        current_app.logger.exception("Get data error")
        return jsonify({"error": "Failed to fetch data"}), 500


@sync_bp.get("/updates/<user_id>")
def updates_route(user_id: str):
    since = request.args.get("since") or request.args.get("lastUpdate")
    try:
        return jsonify(change_service.check_updates(user_id, since)), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ReadFailure:
        return jsonify({"error": "Failed to check updates"}), 500
    except Exception:
        current_app.logger.exception("Updates check error")
        return jsonify({"error": "Failed to check updates"}), 500
