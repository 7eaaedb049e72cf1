"""
Unit tests for RBAC – policy building, query scoping and enforcement.
"""

import pytest

from well2nest.config import get_env
from well2nest.errors import AccessDenied
from well2nest.models import (
    AdminIdentity,
    DoctorIdentity,
    PatientIdentity,
    PharmacistIdentity,
    Role,
    ScopedQuery,
    Session,
    eq,
    in_,
)
from well2nest.rbac import (
    ALL_COLLECTIONS,
    build_policy,
    contains_owner_filter,
    enforce,
    owner_stamp,
    scope_query,
)


# ── Helpers ──────────────────────────────────────────────────────────

def session_for(role, user_id=7):
    identity = {
        Role.ADMIN: AdminIdentity,
        Role.DOCTOR: DoctorIdentity,
        Role.PATIENT: PatientIdentity,
        Role.PHARMACIST: PharmacistIdentity,
    }[role](id=user_id, email=f"{role.value}@x.com")
    return Session.for_identity(identity)


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR: env var MISSING_ENV is not set" in err


# ── Tests: build_policy ─────────────────────────────────────────────

def test_build_policy_anonymous_denied():
    with pytest.raises(AccessDenied):
        build_policy(Session.anonymous())


def test_build_policy_admin_ok():
    policy = build_policy(session_for(Role.ADMIN))
    assert policy.role is Role.ADMIN
    assert policy.allowed_collections == ALL_COLLECTIONS
    assert policy.owner_columns == {}


def test_build_policy_doctor_owner_columns():
    policy = build_policy(session_for(Role.DOCTOR))
    assert policy.owner_columns["appointments"] == "doctor_id"
    assert policy.owner_columns["doctors"] == "id"
    assert "invoices" not in policy.allowed_collections


def test_build_policy_pharmacist_has_no_prescription_owner():
    policy = build_policy(session_for(Role.PHARMACIST))
    assert "prescriptions" in policy.allowed_collections
    assert "prescriptions" not in policy.owner_columns
    assert "appointments" not in policy.allowed_collections


# ── Tests: scope_query ──────────────────────────────────────────────

@pytest.mark.parametrize("role, collection, column", [
    (Role.DOCTOR, "appointments", "doctor_id"),
    (Role.DOCTOR, "prescriptions", "doctor_id"),
    (Role.DOCTOR, "doctor_schedules", "doctor_id"),
    (Role.PATIENT, "appointments", "patient_id"),
    (Role.PATIENT, "prescriptions", "patient_id"),
    (Role.PATIENT, "invoices", "patient_id"),
    (Role.PATIENT, "patients", "id"),
    (Role.PHARMACIST, "pharmacists", "id"),
])
def test_scope_query_applies_owner_filter(role, collection, column):
    q = scope_query(session_for(role, user_id=42), collection)
    assert eq(column, 42) in q.filters


def test_scope_query_admin_unfiltered():
    q = scope_query(session_for(Role.ADMIN), "appointments")
    assert q.filters == []


def test_scope_query_shared_collections_unfiltered():
    assert scope_query(session_for(Role.PATIENT), "doctors").filters == []
    assert scope_query(session_for(Role.PHARMACIST), "prescriptions").filters == []


def test_scope_query_inventory_is_medication_only():
    for role in (Role.DOCTOR, Role.PHARMACIST):
        q = scope_query(session_for(role), "inventory")
        assert q.filters == [eq("category", "Medication")]
    assert scope_query(session_for(Role.ADMIN), "inventory").filters == []


@pytest.mark.parametrize("role, collection", [
    (Role.PHARMACIST, "appointments"),
    (Role.PHARMACIST, "invoices"),
    (Role.DOCTOR, "invoices"),
    (Role.DOCTOR, "site_settings"),
    (Role.PATIENT, "inventory"),
    (Role.PATIENT, "admin_users"),
])
def test_scope_query_denied_collections(role, collection):
    with pytest.raises(AccessDenied):
        scope_query(session_for(role), collection)


def test_scope_query_patient_transactions_need_invoice_ids():
    session = session_for(Role.PATIENT)
    with pytest.raises(ValueError, match="needs parent invoices ids"):
        scope_query(session, "transactions")
    q = scope_query(session, "transactions", parent_ids=[3, 4])
    assert q.filters == [in_("invoice_id", [3, 4])]


# ── Tests: enforce / contains_owner_filter ──────────────────────────

def test_enforce_accepts_scoped_query():
    session = session_for(Role.DOCTOR)
    q = scope_query(session, "appointments").where(eq("status", "scheduled"))
    assert enforce(session, q) is q


def test_enforce_rejects_unscoped_query():
    session = session_for(Role.DOCTOR, user_id=5)
    with pytest.raises(AccessDenied):
        enforce(session, ScopedQuery("appointments"))
    with pytest.raises(AccessDenied):
        enforce(session, ScopedQuery("appointments", [eq("doctor_id", 6)]))


def test_enforce_rejects_transactions_without_parent_filter():
    with pytest.raises(AccessDenied):
        enforce(session_for(Role.PATIENT), ScopedQuery("transactions"))


def test_contains_owner_filter_for_unowned_collection():
    policy = build_policy(session_for(Role.DOCTOR))
    assert contains_owner_filter(ScopedQuery("departments"), policy)


# ── Tests: owner_stamp ──────────────────────────────────────────────

def test_owner_stamp():
    assert owner_stamp(session_for(Role.DOCTOR, 9), "appointments") == {"doctor_id": 9}
    assert owner_stamp(session_for(Role.PATIENT, 4), "appointments") == {"patient_id": 4}
    assert owner_stamp(session_for(Role.ADMIN), "appointments") == {}
    assert owner_stamp(session_for(Role.DOCTOR), "doctors") == {}
