"""
Minimal health check endpoint

Reports process liveness plus Redis reachability; no internal state exposed.
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify

from cache_manager import get_redis_client

# Create health blueprint
health_bp = Blueprint("health", __name__, url_prefix="/api")


def check_redis_connection() -> bool:
    """Test Redis connectivity.

    Returns:
        True if Redis is configured and accessible
    """
    client = get_redis_client()
    if client is None:
        return False
    try:
        return bool(client.ping())
    except Exception:
        return False


@health_bp.route("/health", methods=["GET"])
def health_check():
    """Minimal health check endpoint.

    Returns:
        200: Service is up (redis flag is informational)
    """
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "redis": check_redis_connection(),
        },
    }), 200
