"""
Tests for schema creation and demo data loading.
"""

from well2nest.database import make_engine
from well2nest.gateway import Gateway
from well2nest.models import eq
from well2nest.seed import MEDICATIONS, NUM_DOCTORS, NUM_PATIENTS, seed_database


def test_seed_demo_only(engine):
    gw = Gateway(engine)
    assert gw.select("admin_users", count_only=True) == 1
    assert gw.select("inventory", [eq("category", "Medication")], count_only=True) == len(MEDICATIONS)
    assert gw.select("appointments", count_only=True) == 0
    admin = gw.select_one("admin_users", [eq("email", "admin@well2nest.com")])
    assert admin["password_hash"].startswith("$2b$10$")


def test_seed_synthetic_is_deterministic():
    counts = []
    for _ in range(2):
        eng = make_engine("sqlite://")
        ids = seed_database(eng, synthetic=True)
        assert set(ids) == {"admin", "doctor", "patient", "pharmacist"}
        gw = Gateway(eng)
        assert gw.select("doctors", count_only=True) == NUM_DOCTORS + 1
        assert gw.select("patients", count_only=True) == NUM_PATIENTS + 1
        counts.append(gw.select("appointments", count_only=True))
        eng.dispose()
    assert counts[0] == counts[1]


def test_seed_skips_populated_database(engine):
    assert seed_database(engine) == {}
