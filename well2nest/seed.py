"""
Create the portal schema and load the demo accounts plus synthetic data.
"""

import random
from datetime import date, datetime, timedelta

from faker import Faker
from sqlalchemy import func, insert, select

from well2nest.config import DEMO_PASSWORDS
from well2nest.database import create_schema
from well2nest.passwords import hash_password
from well2nest.schema import (
    admin_users,
    appointments,
    departments,
    doctors,
    inventory,
    patients,
    pharmacists,
    prescriptions,
    site_settings,
)

DEPARTMENTS = [
    ("Cardiology", "Heart and vascular care", "Cardiology"),
    ("Pediatrics", "Care for infants and children", "Pediatrics"),
    ("Orthopedics", "Bones, joints and muscles", "Orthopedics"),
    ("General Medicine", "Primary and internal medicine", "General Practice"),
]

MEDICATIONS = [
    ("Amoxicillin 500mg", 120, 0.45),
    ("Paracetamol 500mg", 300, 0.10),
    ("Ibuprofen 400mg", 8, 0.20),
    ("Metformin 850mg", 0, 0.30),
    ("Atorvastatin 20mg", 60, 0.55),
]

SUPPLIES = [
    ("Surgical Gloves (box)", 40, 6.50),
    ("Syringe 5ml", 500, 0.12),
]

SETTINGS = [
    ("hospital_name", "Well2Nest Hospital", "Name shown in the portal header"),
    ("contact_phone", "+1-800-555-0100", "Front desk phone number"),
    ("appointment_slot_minutes", "30", "Default appointment length"),
]

NUM_DOCTORS = 6
NUM_PATIENTS = 25
APPOINTMENTS_PER_PATIENT = (0, 3)


def _demo_hash(email: str) -> str:
    return hash_password(DEMO_PASSWORDS[email])


def seed_demo_accounts(conn) -> dict:
    """Insert the four demo identities; returns their ids keyed by role."""
    ids = {}
    ids["admin"] = conn.execute(insert(admin_users).values(
        email="admin@well2nest.com", password_hash=_demo_hash("admin@well2nest.com"),
        full_name="System Administrator", role="super_admin", is_active=True,
    )).inserted_primary_key[0]
    ids["doctor"] = conn.execute(insert(doctors).values(
        email="doctor@well2nest.com", password_hash=_demo_hash("doctor@well2nest.com"),
        first_name="Sarah", last_name="Johnson", specialization="Cardiology",
        department="Cardiology", license_number="MD-10001", experience_years=12,
        consultation_fee=150.0, status="active", is_active=True,
    )).inserted_primary_key[0]
    ids["patient"] = conn.execute(insert(patients).values(
        email="patient@well2nest.com", password_hash=_demo_hash("patient@well2nest.com"),
        first_name="John", last_name="Smith", blood_type="O+",
        date_of_birth=date(1985, 4, 12), gender="male", is_active=True,
    )).inserted_primary_key[0]
    ids["pharmacist"] = conn.execute(insert(pharmacists).values(
        email="pharmacist@well2nest.com", password_hash=_demo_hash("pharmacist@well2nest.com"),
        first_name="Maria", last_name="Garcia", license_number="PH-20001", is_active=True,
    )).inserted_primary_key[0]
    return ids


def seed_reference_data(conn) -> None:
    for name, description, specialization in DEPARTMENTS:
        conn.execute(insert(departments).values(
            name=name, description=description, specialization=specialization,
        ))
    for item_name, quantity, price in MEDICATIONS:
        conn.execute(insert(inventory).values(
            item_name=item_name, category="Medication", quantity=quantity,
            unit_price=price, reorder_level=10, supplier="MedSupply Co.",
        ))
    for item_name, quantity, price in SUPPLIES:
        conn.execute(insert(inventory).values(
            item_name=item_name, category="Supplies", quantity=quantity,
            unit_price=price, reorder_level=20, supplier="CarePlus Ltd.",
        ))
    for key, value, description in SETTINGS:
        conn.execute(insert(site_settings).values(
            setting_key=key, setting_value=value, description=description,
        ))


def seed_synthetic(conn, demo_ids: dict, seed: int = 42) -> None:
    """Faker-generated doctors, patients, appointments and prescriptions."""
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)
    default_hash = hash_password("default123")

    doctor_ids = [demo_ids["doctor"]]
    for i in range(NUM_DOCTORS):
        dept = rng.choice(DEPARTMENTS)
        doctor_ids.append(conn.execute(insert(doctors).values(
            email=f"doctor{i + 1}@well2nest.com", password_hash=default_hash,
            first_name=fake.first_name(), last_name=fake.last_name(),
            specialization=dept[2], department=dept[0],
            license_number=f"MD-{11000 + i}", experience_years=rng.randint(1, 30),
            consultation_fee=float(rng.choice([80, 100, 120, 150, 200])),
            status=rng.choice(["active", "active", "active", "on_leave"]), is_active=True,
        )).inserted_primary_key[0])

    patient_ids = [demo_ids["patient"]]
    for i in range(NUM_PATIENTS):
        patient_ids.append(conn.execute(insert(patients).values(
            email=f"patient{i + 1}@well2nest.com", password_hash=default_hash,
            first_name=fake.first_name(), last_name=fake.last_name(),
            phone=fake.phone_number(), address=fake.address(),
            date_of_birth=fake.date_of_birth(minimum_age=1, maximum_age=90),
            gender=rng.choice(["male", "female"]),
            blood_type=rng.choice(["A+", "A-", "B+", "B-", "O+", "O-", "AB+", "AB-"]),
            is_active=True,
        )).inserted_primary_key[0])

    now = datetime.now().replace(minute=0, second=0, microsecond=0)
    medications = [m[0] for m in MEDICATIONS]
    for patient_id in patient_ids:
        for _ in range(rng.randint(*APPOINTMENTS_PER_PATIENT)):
            when = now + timedelta(days=rng.randint(-20, 20), hours=rng.randint(-4, 4))
            doctor_id = rng.choice(doctor_ids)
            conn.execute(insert(appointments).values(
                patient_id=patient_id, doctor_id=doctor_id, appointment_date=when,
                status="completed" if when < now else "scheduled",
                reason=fake.sentence(nb_words=4),
            ))
            if rng.random() < 0.5:
                conn.execute(insert(prescriptions).values(
                    patient_id=patient_id, doctor_id=doctor_id,
                    medication_name=rng.choice(medications), dosage="1 tablet",
                    frequency=rng.choice(["once daily", "twice daily", "every 8 hours"]),
                    duration=f"{rng.randint(3, 14)} days",
                    status=rng.choice(["active", "active", "filled", "completed"]),
                ))


def seed_database(engine, synthetic: bool = True) -> dict:
    """Create tables and load demo data unless admin_users is already populated."""
    create_schema(engine)
    with engine.begin() as conn:
        existing = conn.execute(select(func.count()).select_from(admin_users)).scalar_one()
        if existing:
            print("[seed] Database already seeded; skipping.")
            return {}
        ids = seed_demo_accounts(conn)
        seed_reference_data(conn)
        if synthetic:
            seed_synthetic(conn, ids)
    print(f"[seed] Loaded demo accounts: {', '.join(sorted(ids))}")
    return ids
