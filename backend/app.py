import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

# Load .env from project root (parent directory)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Get frontend URL from environment, default to localhost:5173
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

CORS(
    app,
    origins=[FRONTEND_URL, "http://127.0.0.1:5173"],
)

# Small JSON bodies only (push subscriptions)
app.config["MAX_CONTENT_LENGTH"] = 64 * 1024

# ============================================================================
# REGISTER BLUEPRINTS
# ============================================================================

from routes.bookings import booking_bp
from routes.health import health_bp

app.register_blueprint(health_bp)
app.register_blueprint(booking_bp)


if __name__ == "__main__":
    print("\n" + "=" * 50)
    print("🏆 Court Booking Alerts Backend Starting...")
    print("=" * 50)
    print("📍 API available at: http://localhost:5000")
    print("💡 Test health: http://localhost:5000/api/health")
    print("=" * 50 + "\n")

    app.run(debug=False, use_reloader=False, host="0.0.0.0", port=5000)
