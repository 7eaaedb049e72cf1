"""
Unit tests for the data access gateway.
"""

from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from well2nest.errors import DataAccessError
from well2nest.gateway import Gateway
from well2nest.models import ScopedQuery, eq, gte, in_, lte, neq


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeEngine:
    """Every connection attempt fails the way a dropped server would."""
    def __init__(self):
        self.connect_calls = 0

    def _fail(self):
        self.connect_calls += 1
        raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

    def connect(self):
        self._fail()

    def begin(self):
        self._fail()


# ── Tests: reads ─────────────────────────────────────────────────────

def test_select_filters_and_order(gateway):
    rows = gateway.select(
        "inventory",
        [eq("category", "Medication"), lte("quantity", 10)],
        order_by=[("item_name", False)],
    )
    assert [r["item_name"] for r in rows] == ["Ibuprofen 400mg", "Metformin 850mg"]


def test_select_count_only(gateway):
    assert gateway.select("departments", count_only=True) == 4
    assert gateway.select("inventory", [neq("category", "Medication")], count_only=True) == 2


def test_select_in_and_limit(gateway):
    rows = gateway.select("inventory", [in_("quantity", [0, 8, 300])], order_by=[("quantity", True)], limit=2)
    assert [r["quantity"] for r in rows] == [300, 8]


def test_select_columns(gateway):
    rows = gateway.select("departments", columns=["name"], order_by=[("name", False)])
    assert rows[0] == {"name": "Cardiology"}


def test_select_eq_none_is_null_check(gateway):
    assert gateway.select("departments", [eq("head_doctor_id", None)], count_only=True) == 4
    assert gateway.select("departments", [neq("head_doctor_id", None)], count_only=True) == 0


def test_select_one_requires_exactly_one(gateway):
    assert gateway.select_one("departments", [eq("name", "Pediatrics")])["name"] == "Pediatrics"
    with pytest.raises(DataAccessError, match="got 0"):
        gateway.select_one("departments", [eq("name", "Dermatology")])
    with pytest.raises(DataAccessError, match="got 2"):
        gateway.select_one("departments")


def test_run_scoped_query(gateway):
    q = ScopedQuery("inventory").where(eq("category", "Supplies")).order("item_name").take(1)
    rows = gateway.run(q)
    assert len(rows) == 1
    assert gateway.run(q, count_only=True) == 2


def test_unknown_collection_and_column(gateway):
    with pytest.raises(DataAccessError, match="Unknown collection"):
        gateway.select("nurses")
    with pytest.raises(DataAccessError, match="Unknown column"):
        gateway.select("departments", [eq("floor", 3)])


def test_date_strings_are_coerced(gateway):
    row = gateway.insert("doctor_schedules", {"doctor_id": 1, "schedule_date": "2025-03-01"})
    assert row["schedule_date"] == date(2025, 3, 1)
    assert gateway.select("doctor_schedules", [gte("schedule_date", "2025-03-01")], count_only=True) == 1
    with pytest.raises(DataAccessError, match="Bad value"):
        gateway.select("doctor_schedules", [gte("schedule_date", "March")])


# ── Tests: writes ────────────────────────────────────────────────────

def test_insert_returns_stored_row(gateway):
    row = gateway.insert("appointments", {
        "patient_id": 1, "doctor_id": 1, "appointment_date": "2025-03-01T10:30:00",
    })
    assert row["id"] is not None
    assert row["status"] == "scheduled"
    assert row["appointment_date"] == datetime(2025, 3, 1, 10, 30)


def test_utc_suffix_is_accepted(gateway):
    row = gateway.insert("appointments", {
        "patient_id": 1, "doctor_id": 1, "appointment_date": "2025-03-01T10:30:00.000Z",
    })
    assert row["appointment_date"] == datetime(2025, 3, 1, 10, 30)
    offset = gateway.insert("appointments", {
        "patient_id": 1, "doctor_id": 1, "appointment_date": "2025-03-01T12:30:00+02:00",
    })
    assert offset["appointment_date"] == datetime(2025, 3, 1, 10, 30)
    assert gateway.select("appointments", [gte("appointment_date", "2025-03-01T10:30:00Z")], count_only=True) == 2


def test_insert_constraint_violation(gateway):
    with pytest.raises(DataAccessError):
        gateway.insert("departments", {"name": "Cardiology"})


def test_update_and_delete(gateway):
    assert gateway.update("inventory", [eq("item_name", "Syringe 5ml")], {"quantity": 499}) == 1
    assert gateway.select_one("inventory", [eq("item_name", "Syringe 5ml")])["quantity"] == 499
    assert gateway.delete("inventory", [eq("item_name", "Syringe 5ml")]) == 1
    assert gateway.select("inventory", [eq("item_name", "Syringe 5ml")]) == []


def test_update_and_delete_require_filters(gateway):
    with pytest.raises(DataAccessError):
        gateway.update("inventory", [], {"quantity": 0})
    with pytest.raises(DataAccessError):
        gateway.delete("inventory", [])


# ── Tests: failures ──────────────────────────────────────────────────

def test_connection_failures_become_data_access_error():
    gw = Gateway(FakeEngine())
    with pytest.raises(DataAccessError, match="server closed"):
        gw.select("departments")
    with pytest.raises(DataAccessError):
        gw.select("departments", count_only=True)
    with pytest.raises(DataAccessError):
        gw.insert("departments", {"name": "X"})
    with pytest.raises(DataAccessError):
        gw.update("departments", [eq("id", 1)], {"name": "Y"})
    assert gw.engine.connect_calls == 4
