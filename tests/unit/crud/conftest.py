"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from dastkit.core import builder as b
from dastkit.crud import tables  # noqa: F401


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="trees")
def trees_fixture():
    """Three successive edits of one document."""
    return [
        b.root(b.paragraph("hello")),
        b.root(b.paragraph("hello world")),
        b.root(b.paragraph("hello world"), b.embedded_block("blk-1")),
    ]
