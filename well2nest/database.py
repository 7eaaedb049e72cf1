"""
Database engine initialisation.
"""

import sys
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from well2nest.config import get_env
from well2nest.schema import metadata


def make_engine(db_uri: str):
    """Create an engine; in-memory SQLite is pinned to one shared connection."""
    if db_uri in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            db_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(db_uri, echo=False, future=True)


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection."""
    engine = make_engine(db_uri or get_env("DB_URI"))
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine) -> None:
    """Create any missing portal tables."""
    metadata.create_all(engine)
