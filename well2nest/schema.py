"""
Table definitions for the collections the portal reads and writes.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)

metadata = MetaData()


def _principal_columns():
    return [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("email", String(255), nullable=False, unique=True),
        Column("password_hash", String(255), nullable=False),
        Column("is_active", Boolean, nullable=False, default=True),
        Column("last_login", DateTime),
        Column("created_at", DateTime, server_default=func.current_timestamp()),
    ]


admin_users = Table(
    "admin_users", metadata,
    *_principal_columns(),
    Column("full_name", String(200)),
    Column("role", String(50), default="admin"),
)

doctors = Table(
    "doctors", metadata,
    *_principal_columns(),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(50)),
    Column("specialization", String(100)),
    Column("department", String(100)),
    Column("license_number", String(100)),
    Column("experience_years", Integer),
    Column("consultation_fee", Float),
    Column("status", String(20), default="active"),
)

patients = Table(
    "patients", metadata,
    *_principal_columns(),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(50)),
    Column("date_of_birth", Date),
    Column("gender", String(20)),
    Column("blood_type", String(5)),
    Column("address", Text),
    Column("last_visit", DateTime),
)

pharmacists = Table(
    "pharmacists", metadata,
    *_principal_columns(),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("license_number", String(100)),
)

appointments = Table(
    "appointments", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, ForeignKey("patients.id"), nullable=False),
    Column("doctor_id", Integer, ForeignKey("doctors.id"), nullable=False),
    Column("appointment_date", DateTime, nullable=False),
    Column("status", String(20), default="scheduled"),
    Column("reason", Text),
    Column("notes", Text),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

prescriptions = Table(
    "prescriptions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, ForeignKey("patients.id"), nullable=False),
    Column("doctor_id", Integer, ForeignKey("doctors.id"), nullable=False),
    Column("medication_name", String(200), nullable=False),
    Column("dosage", String(100)),
    Column("frequency", String(100)),
    Column("duration", String(100)),
    Column("instructions", Text),
    Column("status", String(20), default="active"),
    Column("prescribed_date", DateTime, server_default=func.current_timestamp()),
    Column("filled_by", Integer, ForeignKey("pharmacists.id")),
    Column("filled_date", DateTime),
    Column("dispensed_at", DateTime),
    Column("dispensed_quantity", Integer),
    Column("pharmacist_notes", Text),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

invoices = Table(
    "invoices", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, ForeignKey("patients.id"), nullable=False),
    Column("appointment_id", Integer, ForeignKey("appointments.id")),
    Column("invoice_number", String(50), nullable=False, unique=True),
    Column("total_amount", Float, nullable=False),
    Column("paid_amount", Float, default=0),
    Column("status", String(20), default="pending"),
    Column("due_date", Date),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

transactions = Table(
    "transactions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("invoice_id", Integer, ForeignKey("invoices.id"), nullable=False),
    Column("amount", Float, nullable=False),
    Column("payment_method", String(30), default="cash"),
    Column("status", String(20), default="completed"),
    Column("transaction_date", DateTime, server_default=func.current_timestamp()),
)

inventory = Table(
    "inventory", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("item_name", String(200), nullable=False),
    Column("category", String(100)),
    Column("quantity", Integer, nullable=False, default=0),
    Column("unit_price", Float),
    Column("reorder_level", Integer, default=10),
    Column("supplier", String(200)),
    Column("expiry_date", Date),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

doctor_schedules = Table(
    "doctor_schedules", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("doctor_id", Integer, ForeignKey("doctors.id"), nullable=False),
    Column("schedule_date", Date, nullable=False),
    Column("start_time", String(5), default="09:00"),
    Column("end_time", String(5), default="17:00"),
    Column("status", String(20), default="scheduled"),
)

departments = Table(
    "departments", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("specialization", String(100)),
    Column("head_doctor_id", Integer, ForeignKey("doctors.id")),
)

site_settings = Table(
    "site_settings", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("setting_key", String(100), nullable=False, unique=True),
    Column("setting_value", Text),
    Column("description", Text),
    Column("updated_at", DateTime),
)
