"""Shared fixtures for ledger-split tests."""

import pytest

from ledger_split.db import Database
from ledger_split.ledger import LedgerService
from ledger_split.splits import SplitService


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    db_path = tmp_path / "test.db"
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def ledger(db):
    """Create a LedgerService instance."""
    return LedgerService(db)


@pytest.fixture
def splits(db):
    """Create a SplitService instance."""
    return SplitService(db)
