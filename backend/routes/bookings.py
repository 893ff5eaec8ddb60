"""
Booking Routes - Flask Blueprint

Handles sync triggering, sync status, the booking ledger and push
subscriptions. Routes are thin controllers that delegate to
booking_service for business logic.
"""

from flask import Blueprint, jsonify, request

from mailsync.error_tracking import StoreError
from mailsync.logging_config import get_logger
from services import booking_service

logger = get_logger(__name__)

booking_bp = Blueprint("bookings", __name__, url_prefix="/api")


@booking_bp.route("/check-emails", methods=["GET"])
def check_emails():
    """
    Trigger a mailbox sync.

    Query params:
        depth (str): 'all' for a deep (90-day) scan, default window otherwise
        sync (str): '1' to run inline and return the outcome

    Returns:
        202 with queued task details, or 200 with the cycle outcome
    """
    try:
        depth = request.args.get("depth")
        inline = request.args.get("sync") == "1"
        result = booking_service.start_sync(depth=depth, inline=inline)
        return jsonify(result), (200 if inline else 202)
    except Exception as e:
        logger.error(f"Sync trigger error: {e}")
        return jsonify({"error": str(e)}), 500


@booking_bp.route("/sync-status", methods=["GET"])
def sync_status():
    try:
        return jsonify(booking_service.get_sync_status())
    except Exception as e:
        logger.error(f"Sync status error: {e}")
        return jsonify({"error": str(e)}), 500


@booking_bp.route("/bookings", methods=["GET"])
def list_bookings():
    """
    Get the booking ledger, newest first.

    Returns:
        List of booking records (camelCase keys)
    """
    try:
        return jsonify(booking_service.get_bookings())
    except StoreError as e:
        logger.error(f"Booking store unavailable: {e}")
        return jsonify({"error": "Booking store unavailable"}), 503
    except Exception as e:
        logger.error(f"Booking list error: {e}")
        return jsonify({"error": str(e)}), 500


@booking_bp.route("/clear-history", methods=["POST"])
def clear_history():
    try:
        return jsonify(booking_service.clear_history())
    except Exception as e:
        logger.error(f"Clear history error: {e}")
        return jsonify({"error": str(e)}), 500


@booking_bp.route("/subscribe", methods=["POST"])
def subscribe():
    """
    Register a push subscription.

    Body:
        location (str): Facility to receive alerts for
        subscription (dict): Browser PushSubscription JSON

    Returns:
        201 on success, 400 for invalid input
    """
    try:
        data = request.get_json(silent=True) or {}
        result = booking_service.subscribe(data.get("location"), data.get("subscription"))
        return jsonify(result), 201
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Subscribe error: {e}")
        return jsonify({"error": str(e)}), 500
