"""
Credential verification for the demo deployment.

WARNING: this is the placeholder policy the hospital demo shipped with, kept
for behavioural parity. Rule (c) accepts FALLBACK_PASSWORD for *any* account
whose bcrypt comparison fails. Production deployments must set
ALLOW_FALLBACK_PASSWORD=0 so that a failed comparison is a failed login.
"""

from typing import Optional

import bcrypt

from well2nest.config import (
    ALLOW_FALLBACK_PASSWORD,
    DEMO_PASSWORDS,
    FALLBACK_PASSWORD,
    HASH_MARKER,
)


def hash_password(password: str, rounds: int = 10) -> str:
    """bcrypt hash in the "$2b$<rounds>$" format the seeded accounts use."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def _bcrypt_matches(password: str, stored_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        # stored secret is not a bcrypt hash at all
        return False


def verify_password(
    email: str,
    password: str,
    stored_hash: Optional[str],
    allow_fallback: bool = ALLOW_FALLBACK_PASSWORD,
) -> bool:
    """
    Succeeds if any of:
      (a) *password* is the demo password for *email* and the stored secret
          carries the bcrypt marker,
      (b) bcrypt comparison against the stored secret succeeds,
      (c) *password* equals FALLBACK_PASSWORD and allow_fallback is on.
    """
    stored_hash = stored_hash or ""
    demo = DEMO_PASSWORDS.get((email or "").lower())

    if demo is not None and password == demo and stored_hash.startswith(HASH_MARKER):
        return True
    if stored_hash and _bcrypt_matches(password, stored_hash):
        return True
    return allow_fallback and password == FALLBACK_PASSWORD
