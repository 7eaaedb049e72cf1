"""
Dashboard aggregations – billing totals, stock levels and department stats.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from well2nest.config import MAX_PREVIEW_ROWS


def _frame(rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    """DataFrame over *rows* that always has *columns*, even when empty."""
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df


def _money(value) -> float:
    return round(float(value), 2)


# ── Billing ──────────────────────────────────────────────────────────

def billing_summary(invoices: List[Dict[str, Any]], transactions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Revenue figures shown on the payments page. Paid amounts count as
    revenue; the unpaid remainder of every invoice counts as outstanding.
    """
    df = _frame(invoices, ["total_amount", "paid_amount", "status"])
    total = pd.to_numeric(df["total_amount"], errors="coerce").fillna(0)
    paid = pd.to_numeric(df["paid_amount"], errors="coerce").fillna(0)
    balance = total - paid
    is_paid = df["status"] == "paid"

    return {
        "invoice_count": int(len(df)),
        "transaction_count": len(transactions or []),
        "total_revenue": _money(paid.sum()),
        "outstanding": _money(balance.sum()),
        "paid_revenue": _money(paid[is_paid].sum()),
        "pending_amount": _money(balance[~is_paid].sum()),
        "pending_count": int((~is_paid).sum()),
    }


def next_invoice_status(total_amount, paid_amount, payment) -> Dict[str, Any]:
    """New paid_amount and status after applying *payment* to an invoice."""
    new_paid = float(paid_amount or 0) + float(payment)
    return {
        "paid_amount": _money(new_paid),
        "status": "paid" if new_paid >= float(total_amount) else "partial",
    }


# ── Inventory ────────────────────────────────────────────────────────

def stock_status(quantity: int, reorder_level: int) -> str:
    if quantity == 0:
        return "out-of-stock"
    if quantity <= reorder_level:
        return "low-stock"
    return "in-stock"


def inventory_summary(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Counts of low / out-of-stock items and the total stock value."""
    df = _frame(items, ["item_name", "quantity", "reorder_level", "unit_price"])
    qty = pd.to_numeric(df["quantity"], errors="coerce").fillna(0)
    reorder = pd.to_numeric(df["reorder_level"], errors="coerce").fillna(0)
    price = pd.to_numeric(df["unit_price"], errors="coerce").fillna(0)

    low = df[qty <= reorder]
    out = df[qty == 0]
    return {
        "total_items": int(len(df)),
        "low_stock_count": int(len(low)),
        "out_of_stock_count": int(len(out)),
        "total_value": _money((qty * price).sum()),
        "low_stock_items": low["item_name"].tolist(),
        "out_of_stock_items": out["item_name"].tolist(),
    }


# ── Departments ──────────────────────────────────────────────────────

def _is_on(value, day: date) -> bool:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return False
    if isinstance(value, datetime):
        return value.date() == day
    if isinstance(value, date):
        return value == day
    return False


def department_stats(
    departments: List[Dict[str, Any]],
    doctors: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Per-department doctor and appointment counts. Appointments are attributed
    to the department of the doctor they are booked with.
    """
    today = today or date.today()
    docs = _frame(doctors, ["id", "department", "status"])
    appts = _frame(appointments, ["doctor_id", "appointment_date"])

    dept_by_doctor = dict(zip(docs["id"], docs["department"]))
    appts["department"] = appts["doctor_id"].map(dept_by_doctor)
    appts["is_today"] = appts["appointment_date"].map(lambda v: _is_on(v, today))

    out = []
    for dept in departments:
        name = dept.get("name")
        dept_docs = docs[docs["department"] == name]
        dept_appts = appts[appts["department"] == name]
        out.append({
            "id": dept.get("id"),
            "name": name,
            "specialization": dept.get("specialization"),
            "total_doctors": int(len(dept_docs)),
            "active_doctors": int((dept_docs["status"] == "active").sum()),
            "total_appointments": int(len(dept_appts)),
            "today_appointments": int(dept_appts["is_today"].astype(bool).sum()),
        })
    return out


# ── Misc ─────────────────────────────────────────────────────────────

def count_distinct(rows: List[Dict[str, Any]], column: str) -> int:
    """Number of distinct non-null values of *column*."""
    if not rows:
        return 0
    return int(_frame(rows, [column])[column].dropna().nunique())


def preview_table(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> str:
    """Plain-text preview of the first MAX_PREVIEW_ROWS rows."""
    if not rows:
        return "(no rows)"
    df = pd.DataFrame(rows)
    if columns:
        df = df[[c for c in columns if c in df.columns]]
    return df.head(MAX_PREVIEW_ROWS).to_string(index=False)
