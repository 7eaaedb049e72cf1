"""
Unit tests for identities, sessions, tokens and filters.
"""

from datetime import datetime

import pytest

from well2nest.models import (
    AdminIdentity,
    DoctorIdentity,
    Filter,
    PatientIdentity,
    Role,
    ScopedQuery,
    Session,
    SessionToken,
    eq,
    identity_from_row,
    in_,
)


# ── Tests: Role ──────────────────────────────────────────────────────

def test_role_parse():
    assert Role.parse("DOCTOR") is Role.DOCTOR
    assert Role.parse(" patient ") is Role.PATIENT
    assert Role.parse(Role.ADMIN) is Role.ADMIN
    assert Role.parse("nurse") is None
    assert Role.parse(None) is None


# ── Tests: identity_from_row ─────────────────────────────────────────

def test_identity_from_row_admin_role_column():
    identity = identity_from_row(Role.ADMIN, {
        "id": 3, "email": "Boss@Well2Nest.com", "full_name": "Boss", "role": "super_admin",
        "is_active": 1, "created_at": datetime(2024, 1, 2, 3, 4, 5),
    })
    assert isinstance(identity, AdminIdentity)
    assert identity.email == "boss@well2nest.com"
    assert identity.admin_role == "super_admin"
    assert identity.is_active is True
    assert identity.extra["created_at"] == "2024-01-02T03:04:05"
    row = identity.to_row()
    assert row["role"] == "super_admin"
    assert "admin_role" not in row


def test_identity_from_row_keeps_unknown_columns_as_extra():
    identity = identity_from_row(Role.PATIENT, {
        "id": 1, "email": "p@x.com", "first_name": "Ann", "last_name": "Lee", "phone": "555",
    })
    assert isinstance(identity, PatientIdentity)
    assert identity.display_name == "Ann Lee"
    assert identity.extra == {"phone": "555"}
    assert identity.to_row()["phone"] == "555"


def test_identity_from_row_requires_id_and_email():
    with pytest.raises(ValueError):
        identity_from_row(Role.DOCTOR, {"email": "d@x.com"})
    with pytest.raises(ValueError):
        identity_from_row(Role.DOCTOR, {"id": 1})


# ── Tests: Session ───────────────────────────────────────────────────

def test_anonymous_session():
    s = Session.anonymous()
    assert not s.is_authenticated
    assert s.user_id is None
    assert s.role is None


def test_session_requires_role_with_identity():
    doc = DoctorIdentity(id=7, email="d@x.com", first_name="A", last_name="B")
    with pytest.raises(ValueError):
        Session(identity=doc, role=None)
    with pytest.raises(ValueError):
        Session(identity=None, role=Role.DOCTOR)
    with pytest.raises(ValueError):
        Session(identity=doc, role=Role.PATIENT)
    assert Session.for_identity(doc).user_id == 7


# ── Tests: SessionToken ──────────────────────────────────────────────

def test_session_token_round_trip():
    doc = DoctorIdentity(id=7, email="d@x.com")
    token = SessionToken.issue(doc)
    decoded = SessionToken.decode(token.encode())
    assert decoded == token
    assert decoded.type == "doctor"


@pytest.mark.parametrize("bad", ["", "###", "bm90IGpzb24=", "e30="])
def test_session_token_decode_malformed(bad):
    with pytest.raises(ValueError, match="Malformed session token"):
        SessionToken.decode(bad)


# ── Tests: Filter / ScopedQuery ──────────────────────────────────────

def test_filter_rejects_unknown_operator():
    with pytest.raises(ValueError):
        Filter("x", "like", "%a%")


def test_scoped_query_chaining():
    q = ScopedQuery("appointments").where(eq("status", "scheduled")).order("appointment_date").take(5)
    assert q.filters == [eq("status", "scheduled")]
    assert q.order_by == [("appointment_date", False)]
    assert q.limit == 5
    assert in_("id", [1, 2]).value == (1, 2)
