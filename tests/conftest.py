"""
Shared fixtures: an in-memory SQLite portal seeded with the demo accounts.
"""

import pytest

from well2nest.auth import AuthManager
from well2nest.database import make_engine
from well2nest.gateway import Gateway
from well2nest.seed import seed_database
from well2nest.storage import MemorySessionStore

DEMO_LOGINS = {
    "admin": ("admin@well2nest.com", "admin123"),
    "doctor": ("doctor@well2nest.com", "doctor123"),
    "patient": ("patient@well2nest.com", "patient123"),
    "pharmacist": ("pharmacist@well2nest.com", "pharmacist123"),
}


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    seed_database(eng, synthetic=False)
    yield eng
    eng.dispose()


@pytest.fixture
def gateway(engine):
    return Gateway(engine)


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def auth(gateway, store):
    return AuthManager(gateway, store, background_writes=False)


@pytest.fixture
def login_as(gateway):
    """Factory returning an authenticated Session for a demo role."""
    def _login(role):
        manager = AuthManager(gateway, MemorySessionStore(), background_writes=False)
        email, password = DEMO_LOGINS[role]
        result = manager.login(email, password, role)
        assert result.success, result.message
        return result.session
    return _login
