"""
Session helpers and route guards for the Flask API.

The persisted session record lives in Flask's signed session cookie, so each
request restores it exactly as a browser reload would. The cookie is signed
but not encrypted: the client can read the identity row it carries (names,
phone, a patient's date of birth), the same exposure as the browser-storage
record the web dashboard keeps. Only `password_hash` is stripped before it is
stored.
"""

from functools import wraps
from typing import Optional

from flask import current_app, g, jsonify, session as cookie

from well2nest.auth import AuthManager


class CookieSessionStore:
    """Key/value view over flask.session."""

    def get(self, key: str) -> Optional[str]:
        value = cookie.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        cookie[key] = value
        cookie.permanent = True

    def remove(self, key: str) -> None:
        cookie.pop(key, None)


def get_auth() -> AuthManager:
    """The request's AuthManager, with its session already restored."""
    if "auth" not in g:
        g.auth = AuthManager(
            current_app.config["GATEWAY"],
            CookieSessionStore(),
            background_writes=current_app.config.get("BACKGROUND_WRITES", True),
        )
        g.auth.restore_session()
    return g.auth


def login_required(role=None):
    """Decorator that requires a session, optionally of a specific role."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            auth = get_auth()
            if not auth.is_authorized():
                return jsonify({"error": "Authentication required. Please login."}), 401
            if role is not None and not auth.is_authorized(role):
                return jsonify({"error": f"Role '{role}' required"}), 403
            g.session = auth.current_session()
            return f(*args, **kwargs)
        return decorated
    return decorator
