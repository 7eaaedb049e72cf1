"""
Session/auth manager – login, logout, session restore and role checks.
"""

import json
import sys
import threading
from datetime import datetime
from typing import Optional

from well2nest.config import ROLE_TABLES, SESSION_KEYS
from well2nest.errors import AuthError, DataAccessError, InvalidCredentials, InvalidRole
from well2nest.gateway import Gateway
from well2nest.models import (
    LoginResult,
    Role,
    Session,
    SessionToken,
    eq,
    identity_from_row,
)
from well2nest.passwords import verify_password

TOKEN_KEY, DATA_KEY, TYPE_KEY = SESSION_KEYS


def table_for_role(role) -> str:
    """Map a role to its identity collection; raises InvalidRole."""
    parsed = Role.parse(role)
    if parsed is None:
        raise InvalidRole(role)
    return ROLE_TABLES[parsed.value]


class AuthManager:
    """
    Owns the current Session. Consumers read it through current_session()
    and pass it to the query helpers; nothing else mutates it.
    """

    def __init__(self, gateway: Gateway, store, background_writes: bool = True, verifier=verify_password):
        self.gateway = gateway
        self.store = store
        self.background_writes = background_writes
        self.verifier = verifier
        self._session = Session.anonymous()
        self._resolved = False
        self._last_login_thread: Optional[threading.Thread] = None

    # ── Restore / persist ────────────────────────────────────────────

    def restore_session(self) -> Session:
        """
        Load the persisted record once. Missing or malformed records leave
        the session anonymous; a malformed one is also erased.
        """
        if self._resolved:
            return self._session
        self._resolved = True

        token = self.store.get(TOKEN_KEY)
        user_data = self.store.get(DATA_KEY)
        user_type = self.store.get(TYPE_KEY)
        if not (token and user_data and user_type):
            return self._session

        try:
            role = Role.parse(user_type)
            if role is None:
                raise ValueError(f"unknown user type '{user_type}'")
            identity = identity_from_row(role, json.loads(user_data))
            marker = SessionToken.decode(token)
            if marker.type != role.value or marker.id != identity.id:
                raise ValueError("token does not match stored identity")
        except (ValueError, TypeError) as e:
            print(f"[WARN] Discarding persisted session: {e}", file=sys.stderr)
            self._erase()
            return self._session

        self._session = Session.for_identity(identity)
        return self._session

    def _persist(self, session: Session) -> None:
        identity = session.identity
        row = identity.to_row()
        row.pop("password_hash", None)
        self.store.set(TOKEN_KEY, SessionToken.issue(identity).encode())
        self.store.set(DATA_KEY, json.dumps(row))
        self.store.set(TYPE_KEY, session.role.value)

    def _erase(self) -> None:
        for key in SESSION_KEYS:
            self.store.remove(key)

    # ── Login / logout ───────────────────────────────────────────────

    def login(self, email: str, password: str, role) -> LoginResult:
        """Authenticate against the role's table. Never raises AuthError."""
        try:
            session = self._authenticate(email, password, role)
        except AuthError as e:
            print(f"[auth] Login failed for {email!r} as {role!r}: {e}", file=sys.stderr)
            return LoginResult(success=False, error=e)

        try:
            self._persist(session)
        except OSError as e:
            print(f"[WARN] Could not persist session: {e}", file=sys.stderr)

        self._session = session
        self._resolved = True
        print(f"[auth] Logged in as: {session.identity.display_name} (role={session.role.value})")
        return LoginResult(success=True, session=session)

    def _authenticate(self, email: str, password: str, role) -> Session:
        email = (email or "").strip().lower()
        table = table_for_role(role)
        parsed = Role.parse(role)

        try:
            row = self.gateway.select_one(
                table, [eq("email", email), eq("is_active", True)]
            )
        except DataAccessError:
            raise InvalidCredentials()

        if not self.verifier(email, password or "", row.get("password_hash")):
            raise InvalidCredentials()

        try:
            identity = identity_from_row(parsed, row)
        except ValueError:
            raise InvalidCredentials()

        self._touch_last_login(table, identity.id)
        return Session.for_identity(identity)

    def _touch_last_login(self, table: str, user_id) -> None:
        def _update():
            try:
                self.gateway.update(table, [eq("id", user_id)], {"last_login": datetime.utcnow()})
            except DataAccessError as e:
                print(f"[WARN] last_login update failed for {table}.{user_id}: {e}", file=sys.stderr)

        if not self.background_writes:
            _update()
            return
        self._last_login_thread = threading.Thread(target=_update, daemon=True)
        self._last_login_thread.start()

    def wait_for_background(self, timeout: Optional[float] = None) -> None:
        """Join the pending last_login update, if any."""
        if self._last_login_thread is not None:
            self._last_login_thread.join(timeout)

    def logout(self) -> None:
        """Clear the session and erase the persisted record. Idempotent."""
        self._erase()
        self._session = Session.anonymous()
        self._resolved = True

    # ── Accessors ────────────────────────────────────────────────────

    def current_session(self) -> Session:
        return self._session

    def is_authorized(self, required_role=None) -> bool:
        if not self._session.is_authenticated:
            return False
        if required_role is None:
            return True
        return Role.parse(required_role) is self._session.role

    def has_permission(self, required_role, required_sub_role: Optional[str] = None) -> bool:
        """Role check that can also require the identity's own `role` column."""
        if not self.is_authorized(required_role):
            return False
        if required_sub_role is None:
            return True
        row = self._session.identity.to_row()
        return row.get("role") == required_sub_role
