"""
Unit tests for the dashboard aggregation helpers.
"""

from datetime import date, datetime

from well2nest.analysis import (
    billing_summary,
    count_distinct,
    department_stats,
    inventory_summary,
    next_invoice_status,
    preview_table,
    stock_status,
)


# ── Tests: billing ───────────────────────────────────────────────────

def test_billing_summary_empty():
    out = billing_summary([])
    assert out["invoice_count"] == 0
    assert out["total_revenue"] == 0.0
    assert out["pending_count"] == 0


def test_billing_summary_mixed_statuses():
    invoices = [
        {"total_amount": 150, "paid_amount": 150, "status": "paid"},
        {"total_amount": 100, "paid_amount": 40, "status": "partial"},
        {"total_amount": 80, "paid_amount": None, "status": "pending"},
    ]
    out = billing_summary(invoices, transactions=[{"amount": 150}, {"amount": 40}])
    assert out["invoice_count"] == 3
    assert out["transaction_count"] == 2
    assert out["total_revenue"] == 190.0
    assert out["outstanding"] == 140.0
    assert out["paid_revenue"] == 150.0
    assert out["pending_amount"] == 140.0
    assert out["pending_count"] == 2


def test_next_invoice_status():
    assert next_invoice_status(100, 0, 40) == {"paid_amount": 40.0, "status": "partial"}
    assert next_invoice_status(100, 40, 60) == {"paid_amount": 100.0, "status": "paid"}
    assert next_invoice_status(100, None, 100)["status"] == "paid"


# ── Tests: inventory ─────────────────────────────────────────────────

def test_stock_status():
    assert stock_status(0, 10) == "out-of-stock"
    assert stock_status(10, 10) == "low-stock"
    assert stock_status(11, 10) == "in-stock"


def test_inventory_summary():
    items = [
        {"item_name": "A", "quantity": 0, "reorder_level": 10, "unit_price": 2.0},
        {"item_name": "B", "quantity": 5, "reorder_level": 10, "unit_price": 1.0},
        {"item_name": "C", "quantity": 50, "reorder_level": 10, "unit_price": None},
    ]
    out = inventory_summary(items)
    assert out["total_items"] == 3
    assert out["low_stock_count"] == 2
    assert out["out_of_stock_count"] == 1
    assert out["total_value"] == 5.0
    assert out["low_stock_items"] == ["A", "B"]
    assert out["out_of_stock_items"] == ["A"]


# ── Tests: departments ───────────────────────────────────────────────

def test_department_stats():
    today = date(2025, 6, 2)
    departments = [
        {"id": 1, "name": "Cardiology", "specialization": "Cardiology"},
        {"id": 2, "name": "Pediatrics", "specialization": "Pediatrics"},
    ]
    doctors = [
        {"id": 10, "department": "Cardiology", "status": "active"},
        {"id": 11, "department": "Cardiology", "status": "on_leave"},
    ]
    appointments = [
        {"doctor_id": 10, "appointment_date": datetime(2025, 6, 2, 9)},
        {"doctor_id": 11, "appointment_date": "2025-06-01T09:00:00"},
        {"doctor_id": 99, "appointment_date": datetime(2025, 6, 2, 9)},
    ]
    cardio, peds = department_stats(departments, doctors, appointments, today=today)
    assert cardio["total_doctors"] == 2
    assert cardio["active_doctors"] == 1
    assert cardio["total_appointments"] == 2
    assert cardio["today_appointments"] == 1
    assert peds["total_doctors"] == 0
    assert peds["total_appointments"] == 0


# ── Tests: misc ──────────────────────────────────────────────────────

def test_count_distinct():
    assert count_distinct([], "patient_id") == 0
    rows = [{"patient_id": 1}, {"patient_id": 1}, {"patient_id": 2}, {"patient_id": None}]
    assert count_distinct(rows, "patient_id") == 2


def test_preview_table():
    assert preview_table([]) == "(no rows)"
    out = preview_table([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}], columns=["b"])
    assert "x" in out and "y" in out
    assert "a" not in out.splitlines()[0]
