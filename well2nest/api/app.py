"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback
from datetime import timedelta

from flask import Flask
from flask_cors import CORS

from well2nest.config import FLASK_SECRET_KEY, SESSION_LIFETIME_HOURS
from well2nest.database import init_engine
from well2nest.gateway import Gateway
from well2nest.api.routes import register_routes


def create_app(engine=None, gateway=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    app.secret_key = FLASK_SECRET_KEY
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=(os.getenv("FLASK_ENV") == "production"),
        PERMANENT_SESSION_LIFETIME=timedelta(hours=SESSION_LIFETIME_HOURS),
        BACKGROUND_WRITES=True,
    )
    CORS(app, supports_credentials=True)

    # ── Initialise shared resources ──────────────────────────────────
    if gateway is None and engine is None:
        try:
            print("[init] Initializing database connection...")
            engine = init_engine()
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    if gateway is None:
        gateway = Gateway(engine)
    app.config["GATEWAY"] = gateway

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, gateway)
    print("[init] ✓ API server ready")

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Well2Nest Hospital Portal – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Session lifetime: {SESSION_LIFETIME_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/auth/login")
    print(f"  - POST http://{host}:{port}/api/auth/logout")
    print(f"  - GET  http://{host}:{port}/api/user/profile")
    print(f"  - GET  http://{host}:{port}/api/dashboard")
    print(f"  - GET  http://{host}:{port}/api/<listing>")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
