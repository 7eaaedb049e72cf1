"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Identity tables (role → collection) ──────────────────────────────
ROLE_TABLES = {
    "admin": "admin_users",
    "doctor": "doctors",
    "patient": "patients",
    "pharmacist": "pharmacists",
}

# ── Credential policy ────────────────────────────────────────────────
# Seeded demo accounts and their known plaintext passwords.
DEMO_PASSWORDS = {
    "admin@well2nest.com": "admin123",
    "doctor@well2nest.com": "doctor123",
    "patient@well2nest.com": "patient123",
    "pharmacist@well2nest.com": "pharmacist123",
}
HASH_MARKER = "$2b$10$"
FALLBACK_PASSWORD = "default123"

# Accepting FALLBACK_PASSWORD for any account is a known weakness kept for
# parity with the demo deployment. Set to "0" to disable it.
ALLOW_FALLBACK_PASSWORD = os.getenv("ALLOW_FALLBACK_PASSWORD", "1") != "0"

# ── Session persistence ──────────────────────────────────────────────
SESSION_KEYS = ("user_token", "user_data", "user_type")
SESSION_FILE = os.getenv(
    "SESSION_FILE", os.path.join(os.path.expanduser("~"), ".well2nest", "session.json")
)

# ── Domain defaults ──────────────────────────────────────────────────
DEFAULT_CONSULTATION_FEE = 100
INVOICE_DUE_DAYS = 30
LOW_STOCK_THRESHOLD = 10
DASHBOARD_LIST_LIMIT = 5
MAX_PREVIEW_ROWS = 20

# Prescriptions awaiting the pharmacy; new prescriptions start here and only
# these can be dispensed.
DISPENSE_QUEUE_STATUS = "active"

# ── API server ───────────────────────────────────────────────────────
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-key-change-in-production")
SESSION_LIFETIME_HOURS = 8


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
