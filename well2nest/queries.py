"""
Role-scoped reads used by the portal pages and dashboards.

Every helper takes the caller's Session explicitly, builds its query through
the RBAC layer and degrades to an empty result when the gateway fails.
"""

import sys
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from well2nest.analysis import count_distinct
from well2nest.config import DASHBOARD_LIST_LIMIT, DISPENSE_QUEUE_STATUS, LOW_STOCK_THRESHOLD
from well2nest.errors import AccessDenied, DataAccessError
from well2nest.gateway import Gateway
from well2nest.models import Role, ScopedQuery, Session, eq, gte, lte, neq
from well2nest.rbac import enforce, scope_query


def day_bounds(day: date):
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def fetch(gateway: Gateway, session: Session, query: ScopedQuery, count_only: bool = False, columns=None):
    """Run a scoped query; on gateway failure log it and return []/0."""
    enforce(session, query)
    try:
        return gateway.run(query, count_only=count_only, columns=columns)
    except DataAccessError as e:
        print(f"[WARN] Error fetching {query.collection}: {e}", file=sys.stderr)
        return 0 if count_only else []


# ── Listings ─────────────────────────────────────────────────────────

def list_appointments(gateway, session, start=None, end=None, status=None) -> List[Dict[str, Any]]:
    q = scope_query(session, "appointments")
    if status:
        q.where(eq("status", status))
    if start is not None:
        q.where(gte("appointment_date", start))
    if end is not None:
        q.where(lte("appointment_date", end))
    if start is not None or end is not None:
        q.order("appointment_date")
    else:
        q.order("appointment_date", descending=True)
    return fetch(gateway, session, q)


def list_prescriptions(gateway, session, status=None) -> List[Dict[str, Any]]:
    q = scope_query(session, "prescriptions")
    if status:
        q.where(eq("status", status))
    return fetch(gateway, session, q.order("created_at", descending=True))


def list_invoices(gateway, session) -> List[Dict[str, Any]]:
    q = scope_query(session, "invoices").order("created_at", descending=True)
    return fetch(gateway, session, q)


def list_transactions(gateway, session) -> List[Dict[str, Any]]:
    """Patients see transactions only through their own invoices."""
    parent_ids = None
    if session.role is Role.PATIENT:
        invoices = fetch(gateway, session, scope_query(session, "invoices"), columns=["id"])
        parent_ids = [row["id"] for row in invoices]
        if not parent_ids:
            return []
    q = scope_query(session, "transactions", parent_ids=parent_ids)
    return fetch(gateway, session, q.order("transaction_date", descending=True))


def list_schedules(gateway, session, start: Optional[date] = None, end: Optional[date] = None) -> List[Dict[str, Any]]:
    q = scope_query(session, "doctor_schedules")
    if start is not None:
        q.where(gte("schedule_date", start))
    if end is not None:
        q.where(lte("schedule_date", end))
    return fetch(gateway, session, q.order("schedule_date").order("start_time"))


def list_doctors(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "doctors").order("first_name"))


def list_patients(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "patients").order("first_name"))


def list_inventory(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "inventory").order("item_name"))


def list_departments(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "departments").order("name"))


def list_settings(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "site_settings").order("setting_key"))


def list_admin_users(gateway, session) -> List[Dict[str, Any]]:
    return fetch(gateway, session, scope_query(session, "admin_users").order("created_at"))


LISTINGS = {
    "appointments": list_appointments,
    "prescriptions": list_prescriptions,
    "invoices": list_invoices,
    "transactions": list_transactions,
    "schedules": list_schedules,
    "doctors": list_doctors,
    "patients": list_patients,
    "inventory": list_inventory,
    "departments": list_departments,
    "settings": list_settings,
    "admin-users": list_admin_users,
}


# ── Dashboards ───────────────────────────────────────────────────────

def doctor_dashboard(gateway, session, today: date) -> Dict[str, Any]:
    start, end = day_bounds(today)
    todays = (
        scope_query(session, "appointments")
        .where(eq("status", "scheduled"), gte("appointment_date", start), lte("appointment_date", end))
        .order("appointment_date")
    )
    all_appts = fetch(gateway, session, scope_query(session, "appointments"), columns=["patient_id"])
    pending = scope_query(session, "prescriptions").where(eq("status", DISPENSE_QUEUE_STATUS))
    schedule = fetch(gateway, session, todays)
    return {
        "today_appointments": len(schedule),
        "total_patients": count_distinct(all_appts, "patient_id"),
        "pending_prescriptions": fetch(gateway, session, pending, count_only=True),
        "today_schedule": schedule,
    }


def patient_dashboard(gateway, session, today: date) -> Dict[str, Any]:
    start, _ = day_bounds(today)
    upcoming = scope_query(session, "appointments").where(
        eq("status", "scheduled"), gte("appointment_date", start)
    )
    active = scope_query(session, "prescriptions").where(eq("status", DISPENSE_QUEUE_STATUS))
    unpaid = scope_query(session, "invoices").where(neq("status", "paid"))
    upcoming_list = (
        scope_query(session, "appointments")
        .where(eq("status", "scheduled"), gte("appointment_date", start))
        .order("appointment_date")
        .take(DASHBOARD_LIST_LIMIT)
    )
    return {
        "upcoming_appointments": fetch(gateway, session, upcoming, count_only=True),
        "active_prescriptions": fetch(gateway, session, active, count_only=True),
        "pending_payments": fetch(gateway, session, unpaid, count_only=True),
        "next_appointments": fetch(gateway, session, upcoming_list),
    }


def pharmacist_dashboard(gateway, session, today: date) -> Dict[str, Any]:
    start, end = day_bounds(today)
    pending = scope_query(session, "prescriptions").where(eq("status", DISPENSE_QUEUE_STATUS))
    recent = (
        scope_query(session, "prescriptions")
        .where(eq("status", DISPENSE_QUEUE_STATUS))
        .order("prescribed_date", descending=True)
        .take(DASHBOARD_LIST_LIMIT)
    )
    low_stock = scope_query(session, "inventory").where(lte("quantity", LOW_STOCK_THRESHOLD))
    filled_today = scope_query(session, "prescriptions").where(
        eq("status", "filled"),
        eq("filled_by", session.user_id),
        gte("filled_date", start),
        lte("filled_date", end),
    )
    return {
        "pending_prescriptions": fetch(gateway, session, pending, count_only=True),
        "low_stock_items": fetch(gateway, session, low_stock, count_only=True),
        "today_filled": fetch(gateway, session, filled_today, count_only=True),
        "recent_prescriptions": fetch(gateway, session, recent),
    }


def admin_dashboard(gateway, session, today: date) -> Dict[str, Any]:
    start, end = day_bounds(today)
    todays = scope_query(session, "appointments").where(gte("appointment_date", start), lte("appointment_date", end))
    unpaid = scope_query(session, "invoices").where(neq("status", "paid"))
    return {
        "patients": fetch(gateway, session, scope_query(session, "patients"), count_only=True),
        "doctors": fetch(gateway, session, scope_query(session, "doctors"), count_only=True),
        "departments": fetch(gateway, session, scope_query(session, "departments"), count_only=True),
        "today_appointments": fetch(gateway, session, todays, count_only=True),
        "unpaid_invoices": fetch(gateway, session, unpaid, count_only=True),
    }


DASHBOARDS = {
    Role.ADMIN: admin_dashboard,
    Role.DOCTOR: doctor_dashboard,
    Role.PATIENT: patient_dashboard,
    Role.PHARMACIST: pharmacist_dashboard,
}


def dashboard_stats(gateway, session, today: Optional[date] = None) -> Dict[str, Any]:
    """Statistics for the session's own dashboard."""
    if not session.is_authenticated:
        raise AccessDenied("anonymous", "dashboard")
    stats = DASHBOARDS[session.role](gateway, session, today or date.today())
    stats["role"] = session.role.value
    return stats
