"""
Role-Based Access Control – building policies and scoping collection reads.

Row-level access is enforced here, on the client side of the store; the
store itself trusts whatever filters it is handed.
"""

from typing import Iterable, Optional

from well2nest.errors import AccessDenied
from well2nest.models import Policy, Role, ScopedQuery, Session, eq, in_

ALL_COLLECTIONS = frozenset({
    "admin_users", "doctors", "patients", "pharmacists",
    "appointments", "prescriptions", "invoices", "transactions",
    "inventory", "doctor_schedules", "departments", "site_settings",
})

MEDICATION_ONLY = [eq("category", "Medication")]


def build_policy(session: Session) -> Policy:
    """Derive an RBAC Policy from an authenticated Session."""
    if not session.is_authenticated:
        raise AccessDenied("anonymous", "*")

    role = session.role
    user_id = session.user_id

    if role is Role.ADMIN:
        return Policy(
            role=role,
            user_id=user_id,
            allowed_collections=ALL_COLLECTIONS,
            owner_columns={},
            parent_scopes={},
            role_filters={},
            notes="Admin can read and write every collection without row filters.",
        )

    if role is Role.DOCTOR:
        return Policy(
            role=role,
            user_id=user_id,
            allowed_collections=frozenset({
                "appointments", "prescriptions", "doctor_schedules", "doctors",
                "patients", "departments", "inventory",
            }),
            owner_columns={
                "appointments": "doctor_id",
                "prescriptions": "doctor_id",
                "doctor_schedules": "doctor_id",
                "doctors": "id",
            },
            parent_scopes={},
            role_filters={"inventory": MEDICATION_ONLY},
            notes="Doctor sees only their own appointments, prescriptions, schedules and profile.",
        )

    if role is Role.PATIENT:
        return Policy(
            role=role,
            user_id=user_id,
            allowed_collections=frozenset({
                "appointments", "prescriptions", "invoices", "transactions",
                "patients", "doctors", "departments",
            }),
            owner_columns={
                "appointments": "patient_id",
                "prescriptions": "patient_id",
                "invoices": "patient_id",
                "patients": "id",
            },
            parent_scopes={"transactions": ("invoice_id", "invoices")},
            role_filters={},
            notes="Patient sees only their own records; transactions through their own invoices.",
        )

    if role is Role.PHARMACIST:
        return Policy(
            role=role,
            user_id=user_id,
            allowed_collections=frozenset({
                "prescriptions", "inventory", "pharmacists", "departments",
            }),
            owner_columns={"pharmacists": "id"},
            parent_scopes={},
            role_filters={"inventory": MEDICATION_ONLY},
            notes="Pharmacist works the shared prescription queue and medication stock.",
        )

    raise ValueError(f"Unknown role: {role}")


def scope_query(session: Session, collection: str, parent_ids: Optional[Iterable] = None) -> ScopedQuery:
    """
    Start a read of *collection* on behalf of *session*, with the owner
    filter and any role filters already applied. Collections scoped through
    a parent (patient transactions) need the ids of the caller's parent rows.
    """
    policy = build_policy(session)
    if collection not in policy.allowed_collections:
        raise AccessDenied(policy.role.value, collection)

    query = ScopedQuery(collection)
    owner_col = policy.owner_columns.get(collection)
    if owner_col:
        query.where(eq(owner_col, policy.user_id))

    parent = policy.parent_scopes.get(collection)
    if parent:
        if parent_ids is None:
            raise ValueError(f"{collection} for role {policy.role.value} needs parent {parent[1]} ids.")
        query.where(in_(parent[0], parent_ids))

    query.where(*policy.role_filters.get(collection, []))
    return query


def contains_owner_filter(query: ScopedQuery, policy: Policy) -> bool:
    """Check that the query binds the owner column to the policy's user id."""
    owner_col = policy.owner_columns.get(query.collection)
    if owner_col is None:
        return True
    return any(
        f.op == "eq" and f.column == owner_col and f.value == policy.user_id
        for f in query.filters
    )


def enforce(session: Session, query: ScopedQuery) -> ScopedQuery:
    """Raise AccessDenied unless *query* respects the session's policy."""
    policy = build_policy(session)
    if query.collection not in policy.allowed_collections:
        raise AccessDenied(policy.role.value, query.collection)
    if not contains_owner_filter(query, policy):
        raise AccessDenied(policy.role.value, query.collection)
    parent = policy.parent_scopes.get(query.collection)
    if parent and not any(f.op == "in" and f.column == parent[0] for f in query.filters):
        raise AccessDenied(policy.role.value, query.collection)
    return query


def owner_stamp(session: Session, collection: str) -> dict:
    """Columns a non-admin caller's inserts are pinned to (doctor_id for doctors)."""
    policy = build_policy(session)
    owner_col = policy.owner_columns.get(collection)
    if owner_col and owner_col != "id":
        return {owner_col: policy.user_id}
    return {}

