"""Shared pytest fixtures. The global database lives in a throwaway directory."""

import os
import tempfile

# Must be set before backend.config is imported
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="finance-tracker-tests-")

from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from backend.db.sqlite import Database, db  # noqa: E402
from backend.models import Category, CategoryCreate, TransactionType  # noqa: E402


@pytest.fixture
def owner_id() -> str:
    """A fresh owner so tests sharing the global database never see each other's rows."""
    return f"user-{uuid4()}"


@pytest.fixture
def temp_db(tmp_path) -> Database:
    """An isolated database file."""
    return Database(db_path=tmp_path / "test.db")


@pytest.fixture
def make_category(owner_id):
    """Create categories for the test owner in the global database."""

    def _make(name: str, txn_type: TransactionType = TransactionType.EXPENSE) -> Category:
        return db.add_category(owner_id, CategoryCreate(name=name, type=txn_type))

    return _make
