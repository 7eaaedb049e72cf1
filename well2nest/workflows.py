"""
Write operations behind the portal forms.

Multi-step writes are not wrapped in a transaction: when a later step fails
after an earlier one committed, PartialWriteFailure names the row that was
left behind instead of pretending nothing happened.
"""

import random
import string
import sys
import time
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from well2nest.analysis import next_invoice_status
from well2nest.config import DEFAULT_CONSULTATION_FEE, DISPENSE_QUEUE_STATUS, INVOICE_DUE_DAYS
from well2nest.errors import AccessDenied, DataAccessError, PartialWriteFailure
from well2nest.gateway import Gateway
from well2nest.models import Role, Session, eq
from well2nest.passwords import hash_password
from well2nest.queries import fetch
from well2nest.rbac import owner_stamp, scope_query


def _require(session: Session, collection: str, *roles: Role) -> None:
    if not session.is_authenticated:
        raise AccessDenied("anonymous", collection)
    if session.role not in roles:
        raise AccessDenied(session.role.value, collection)


def new_invoice_number() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"INV-{int(time.time() * 1000)}-{suffix}"


def _owned_row(gateway: Gateway, session: Session, collection: str, row_id) -> Dict[str, Any]:
    rows = fetch(gateway, session, scope_query(session, collection).where(eq("id", row_id)))
    if not rows:
        raise DataAccessError(f"{collection} {row_id} not found.", collection)
    return rows[0]


# ── Appointments & billing ───────────────────────────────────────────

def consultation_fee(gateway: Gateway, doctor_id) -> float:
    """The doctor's fee, or DEFAULT_CONSULTATION_FEE when unknown."""
    try:
        row = gateway.select_one("doctors", [eq("id", doctor_id)], columns=["consultation_fee"])
    except DataAccessError as e:
        print(f"[WARN] Fee lookup failed for doctor {doctor_id}: {e}", file=sys.stderr)
        return float(DEFAULT_CONSULTATION_FEE)
    return float(row.get("consultation_fee") or DEFAULT_CONSULTATION_FEE)


def create_appointment(gateway: Gateway, session: Session, data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Book an appointment and bill it. A failure to book is a clean
    DataAccessError; a failure to bill raises PartialWriteFailure carrying
    the new appointment id.
    """
    _require(session, "appointments", Role.ADMIN, Role.DOCTOR, Role.PATIENT)
    row = {k: data.get(k) for k in ("patient_id", "doctor_id", "appointment_date", "reason", "notes") if k in data}
    row.update(owner_stamp(session, "appointments"))
    row.setdefault("status", "scheduled")

    appointment = gateway.insert("appointments", row)

    today = today or date.today()
    try:
        invoice = gateway.insert("invoices", {
            "patient_id": appointment["patient_id"],
            "appointment_id": appointment["id"],
            "invoice_number": new_invoice_number(),
            "total_amount": consultation_fee(gateway, appointment["doctor_id"]),
            "status": "pending",
            "due_date": today + timedelta(days=INVOICE_DUE_DAYS),
        })
    except DataAccessError as e:
        raise PartialWriteFailure("appointments", appointment["id"], "invoice creation", e) from e

    return {"appointment": appointment, "invoice": invoice}


def create_invoice(gateway: Gateway, session: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    _require(session, "invoices", Role.ADMIN)
    return gateway.insert("invoices", {
        "patient_id": data["patient_id"],
        "appointment_id": data.get("appointment_id") or None,
        "invoice_number": new_invoice_number(),
        "total_amount": float(data["total_amount"]),
        "status": "pending",
        "due_date": data.get("due_date") or None,
    })


def process_payment(gateway: Gateway, session: Session, invoice_id, amount, payment_method: str = "cash") -> Dict[str, Any]:
    """Record a transaction, then roll it into the invoice's paid amount."""
    _require(session, "transactions", Role.ADMIN, Role.PATIENT)
    if invoice_id in (None, ""):
        raise ValueError("invoice_id is required.")
    amount = float(amount)
    if amount <= 0:
        raise ValueError("Payment amount must be positive.")

    invoice = _owned_row(gateway, session, "invoices", invoice_id)
    balance = float(invoice["total_amount"]) - float(invoice.get("paid_amount") or 0)
    if amount > balance + 1e-9:
        raise ValueError(f"Payment {amount:.2f} exceeds balance due {balance:.2f}.")

    transaction = gateway.insert("transactions", {
        "invoice_id": invoice["id"],
        "amount": amount,
        "payment_method": payment_method,
        "status": "completed",
    })

    patch = next_invoice_status(invoice["total_amount"], invoice.get("paid_amount"), amount)
    try:
        gateway.update("invoices", [eq("id", invoice["id"])], patch)
    except DataAccessError as e:
        raise PartialWriteFailure("transactions", transaction["id"], "invoice update", e) from e

    return {"transaction": transaction, "invoice": {**invoice, **patch}}


# ── Prescriptions ────────────────────────────────────────────────────

def create_prescription(gateway: Gateway, session: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    """Doctors always prescribe as themselves."""
    _require(session, "prescriptions", Role.ADMIN, Role.DOCTOR)
    fields = (
        "patient_id", "doctor_id", "medication_name", "dosage",
        "frequency", "duration", "instructions", "status",
    )
    row = {k: data[k] for k in fields if k in data}
    row.update(owner_stamp(session, "prescriptions"))
    row.setdefault("status", DISPENSE_QUEUE_STATUS)
    return gateway.insert("prescriptions", row)


def dispense_prescription(gateway: Gateway, session: Session, prescription_id, quantity, notes: str = "") -> Dict[str, Any]:
    """
    Mark a prescription filled by the current pharmacist, then draw the
    quantity from the matching medication stock (never below zero).
    """
    _require(session, "prescriptions", Role.ADMIN, Role.PHARMACIST)
    quantity = int(quantity)
    if quantity <= 0:
        raise ValueError("Dispensed quantity must be positive.")

    prescription = _owned_row(gateway, session, "prescriptions", prescription_id)
    if prescription.get("status") != DISPENSE_QUEUE_STATUS:
        raise ValueError(
            f"Prescription {prescription['id']} is {prescription.get('status')!r}; "
            f"only {DISPENSE_QUEUE_STATUS!r} prescriptions can be dispensed."
        )
    now = datetime.now()
    patch = {
        "status": "filled",
        "filled_by": session.user_id if session.role is Role.PHARMACIST else prescription.get("filled_by"),
        "filled_date": now,
        "dispensed_at": now,
        "dispensed_quantity": quantity,
        "pharmacist_notes": notes,
    }
    gateway.update("prescriptions", [eq("id", prescription["id"])], patch)

    name = (prescription.get("medication_name") or "").lower()
    item = None
    try:
        stock = gateway.select("inventory", [eq("category", "Medication")])
        item = next((i for i in stock if (i.get("item_name") or "").lower() == name), None)
        if item is not None:
            remaining = max(0, int(item["quantity"]) - quantity)
            gateway.update("inventory", [eq("id", item["id"])], {"quantity": remaining})
    except DataAccessError as e:
        raise PartialWriteFailure("prescriptions", prescription["id"], "inventory update", e) from e

    return {**prescription, **patch, "inventory_item_id": item["id"] if item else None}


# ── Schedules, inventory, settings, users ────────────────────────────

def create_schedule(gateway: Gateway, session: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    _require(session, "doctor_schedules", Role.ADMIN, Role.DOCTOR)
    row = {k: data[k] for k in ("doctor_id", "schedule_date", "start_time", "end_time", "status") if k in data}
    row.update(owner_stamp(session, "doctor_schedules"))
    row.setdefault("start_time", "09:00")
    row.setdefault("end_time", "17:00")
    row.setdefault("status", "scheduled")
    return gateway.insert("doctor_schedules", row)


def save_inventory_item(gateway: Gateway, session: Session, data: Dict[str, Any], item_id=None) -> Optional[Dict[str, Any]]:
    """Insert a new item, or update *item_id* in place."""
    _require(session, "inventory", Role.ADMIN, Role.PHARMACIST)
    row = dict(data)
    if "quantity" in row:
        row["quantity"] = int(row["quantity"])
    if "reorder_level" in row:
        row["reorder_level"] = int(row["reorder_level"])
    if row.get("unit_price") not in (None, ""):
        row["unit_price"] = float(row["unit_price"])
    else:
        row.pop("unit_price", None)

    if item_id is None:
        return gateway.insert("inventory", row)
    gateway.update("inventory", [eq("id", item_id)], row)
    return None


def delete_inventory_item(gateway: Gateway, session: Session, item_id) -> None:
    _require(session, "inventory", Role.ADMIN, Role.PHARMACIST)
    gateway.delete("inventory", [eq("id", item_id)])


def update_setting(gateway: Gateway, session: Session, key: str, value: str) -> None:
    _require(session, "site_settings", Role.ADMIN)
    gateway.update(
        "site_settings",
        [eq("setting_key", key)],
        {"setting_value": value, "updated_at": datetime.utcnow()},
    )


def create_admin_user(gateway: Gateway, session: Session, email: str, full_name: str, password: str, role: str = "admin") -> Dict[str, Any]:
    _require(session, "admin_users", Role.ADMIN)
    return gateway.insert("admin_users", {
        "email": email.strip().lower(),
        "password_hash": hash_password(password),
        "full_name": full_name,
        "role": role,
        "is_active": True,
    })


def set_user_active(gateway: Gateway, session: Session, collection: str, user_id, active: bool) -> None:
    """Activate or deactivate a principal; admins cannot deactivate themselves."""
    _require(session, collection, Role.ADMIN)
    if collection not in ("admin_users", "doctors", "patients", "pharmacists"):
        raise AccessDenied(session.role.value, collection)
    if collection == "admin_users" and user_id == session.user_id and not active:
        raise ValueError("An administrator cannot deactivate their own account.")
    gateway.update(collection, [eq("id", user_id)], {"is_active": bool(active)})
