"""Engine and session helpers for the entity store"""

import os

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Registers the tables on SQLModel.metadata
from dastkit.crud import tables  # noqa: F401


DEFAULT_URL = "sqlite:///dastkit.db"


def get_url(explicit: str | None = None) -> str:
    """Explicit URL, else DASTKIT_DB_URL, else the local SQLite default."""
    if explicit:
        return explicit
    return os.getenv("DASTKIT_DB_URL") or DEFAULT_URL


def make_engine(db_url: str) -> Engine:
    return create_engine(db_url, echo=False)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(engine: Engine):
    with Session(engine) as session:
        yield session
