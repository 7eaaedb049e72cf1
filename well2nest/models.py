"""
Domain dataclasses used across the application.
"""

import base64
import binascii
import json
import time
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Tuple


class Role(str, Enum):
    """The four portals a principal can sign in to."""
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"
    PHARMACIST = "pharmacist"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        """Return the Role for *value*, or None if it names no role."""
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# ── Identities ───────────────────────────────────────────────────────

@dataclass
class Identity:
    """An authenticated principal; one subclass per Role."""
    role: ClassVar[Role]

    id: Any
    email: str
    is_active: bool = True
    password_hash: str = ""
    last_login: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.email

    def to_row(self) -> Dict[str, Any]:
        """Flatten back to a JSON-safe row dict (extras included)."""
        row = dict(self.extra)
        for f in fields(self):
            if f.name != "extra":
                row[f.name] = getattr(self, f.name)
        return json_safe(row)


@dataclass
class AdminIdentity(Identity):
    role: ClassVar[Role] = Role.ADMIN

    full_name: str = ""
    admin_role: str = "admin"

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def to_row(self) -> Dict[str, Any]:
        row = super().to_row()
        row["role"] = row.pop("admin_role")
        return row


@dataclass
class DoctorIdentity(Identity):
    role: ClassVar[Role] = Role.DOCTOR

    first_name: str = ""
    last_name: str = ""
    specialization: Optional[str] = None
    department: Optional[str] = None
    consultation_fee: Optional[float] = None

    @property
    def display_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}".strip()


@dataclass
class PatientIdentity(Identity):
    role: ClassVar[Role] = Role.PATIENT

    first_name: str = ""
    last_name: str = ""
    blood_type: Optional[str] = None
    last_visit: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class PharmacistIdentity(Identity):
    role: ClassVar[Role] = Role.PHARMACIST

    first_name: str = ""
    last_name: str = ""
    license_number: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


IDENTITY_TYPES = {
    Role.ADMIN: AdminIdentity,
    Role.DOCTOR: DoctorIdentity,
    Role.PATIENT: PatientIdentity,
    Role.PHARMACIST: PharmacistIdentity,
}


def identity_from_row(role: Role, row: Dict[str, Any]) -> Identity:
    """Build the Identity variant for *role* from a raw table row."""
    cls = IDENTITY_TYPES[role]
    data = json_safe(dict(row))
    if role is Role.ADMIN and "role" in data:
        data["admin_role"] = data.pop("role")
    known = {f.name for f in fields(cls)} - {"extra"}
    kwargs = {k: v for k, v in data.items() if k in known}
    if "id" not in kwargs or "email" not in kwargs:
        raise ValueError("Identity row must carry id and email.")
    kwargs["email"] = str(kwargs["email"]).lower()
    kwargs["is_active"] = bool(kwargs.get("is_active", True))
    extra = {k: v for k, v in data.items() if k not in known}
    return cls(extra=extra, **kwargs)


def json_safe(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert datetimes and decimals so the row survives json.dumps()."""
    out = {}
    for k, v in row.items():
        if isinstance(v, (datetime, date)):
            out[k] = v.isoformat()
        elif isinstance(v, Decimal):
            out[k] = float(v)
        else:
            out[k] = v
    return out


# ── Session ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Session:
    """The current identity plus its role, or anonymous (both None)."""
    identity: Optional[Identity] = None
    role: Optional[Role] = None

    def __post_init__(self):
        if (self.identity is None) != (self.role is None):
            raise ValueError("Session role must be set iff identity is set.")
        if self.identity is not None and self.identity.role is not self.role:
            raise ValueError(
                f"Session role {self.role} does not match identity type {self.identity.role}."
            )

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()

    @classmethod
    def for_identity(cls, identity: Identity) -> "Session":
        return cls(identity=identity, role=identity.role)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self):
        return self.identity.id if self.identity is not None else None


@dataclass(frozen=True)
class SessionToken:
    """
    Opaque local marker that a login happened: base64 of a JSON blob.
    Not a credential and never verified as one.
    """
    id: Any
    email: str
    type: str
    timestamp: int

    @classmethod
    def issue(cls, identity: Identity) -> "SessionToken":
        return cls(
            id=identity.id,
            email=identity.email,
            type=identity.role.value,
            timestamp=int(time.time() * 1000),
        )

    def encode(self) -> str:
        payload = {"id": self.id, "email": self.email, "type": self.type, "timestamp": self.timestamp}
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "SessionToken":
        """Parse an encoded marker; raises ValueError if it is malformed."""
        try:
            payload = json.loads(base64.b64decode(token.encode("ascii"), validate=True))
            return cls(
                id=payload["id"],
                email=payload["email"],
                type=payload["type"],
                timestamp=int(payload["timestamp"]),
            )
        except (binascii.Error, UnicodeError, TypeError, KeyError, ValueError) as e:
            raise ValueError(f"Malformed session token: {e}") from e


@dataclass
class LoginResult:
    """Outcome of AuthManager.login(); exactly one of session/error is set."""
    success: bool
    session: Optional[Session] = None
    error: Optional[Exception] = None

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""


# ── Queries / RBAC ───────────────────────────────────────────────────

FILTER_OPS = ("eq", "neq", "gte", "lte", "in")


@dataclass(frozen=True)
class Filter:
    """One predicate of a conjunctive row filter."""
    column: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


def eq(column: str, value) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value) -> Filter:
    return Filter(column, "neq", value)


def gte(column: str, value) -> Filter:
    return Filter(column, "gte", value)


def lte(column: str, value) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values) -> Filter:
    return Filter(column, "in", tuple(values))


@dataclass
class ScopedQuery:
    """A collection read with the owner filter (if any) already applied."""
    collection: str
    filters: List[Filter] = field(default_factory=list)
    order_by: List[Tuple[str, bool]] = field(default_factory=list)  # (column, descending)
    limit: Optional[int] = None

    def where(self, *filters: Filter) -> "ScopedQuery":
        self.filters.extend(filters)
        return self

    def order(self, column: str, descending: bool = False) -> "ScopedQuery":
        self.order_by.append((column, descending))
        return self

    def take(self, n: int) -> "ScopedQuery":
        self.limit = n
        return self


@dataclass
class Policy:
    """RBAC policy derived from a Session."""
    role: Role
    user_id: Any
    allowed_collections: FrozenSet[str]
    owner_columns: Dict[str, str]
    parent_scopes: Dict[str, Tuple[str, str]]  # collection -> (fk column, parent collection)
    role_filters: Dict[str, List[Filter]]
    notes: str
