"""Tests for duplicate detection against stored transactions."""

from datetime import date

import pytest

from backend.db.sqlite import db
from backend.models import ExtractedTransaction, Transaction
from backend.services.dedup import description_prefix, is_duplicate

STORED_DESCRIPTION = "WHOLE FOODS MARKET #10234 AUSTIN TX"


@pytest.fixture
def stored(owner_id) -> Transaction:
    """One grocery purchase already saved for the owner."""
    txn = Transaction(
        owner_id=owner_id,
        date=date(2024, 3, 1),
        description=STORED_DESCRIPTION,
        amount=-87.43,
        type="EXPENSE",
    )
    db.bulk_insert_transactions([txn])
    return txn


def candidate(description: str = STORED_DESCRIPTION, txn_date=date(2024, 3, 1), amount=-87.43):
    return ExtractedTransaction(date=txn_date, description=description, amount=amount, type="EXPENSE")


class TestDescriptionPrefix:
    """Prefix used for fuzzy matching."""

    def test_default_length(self):
        """Should take the first 20 characters by default."""
        assert description_prefix(STORED_DESCRIPTION) == "WHOLE FOODS MARKET #"

    def test_short_description(self):
        """Should return short descriptions whole."""
        assert description_prefix("ATM") == "ATM"

    def test_explicit_length(self):
        """Should honor an explicit length."""
        assert description_prefix(STORED_DESCRIPTION, 5) == "WHOLE"


class TestIsDuplicate:
    """Date, amount and prefix must all match."""

    def test_same_date_amount_prefix(self, owner_id, stored):
        """Should flag a transaction matching on date, amount and prefix."""
        assert is_duplicate(candidate("WHOLE FOODS MARKET #99 DALLAS TX"), owner_id) is True

    def test_different_date(self, owner_id, stored):
        """Should not flag a transaction on another day."""
        assert is_duplicate(candidate(txn_date=date(2024, 3, 2)), owner_id) is False

    def test_different_amount(self, owner_id, stored):
        """Should not flag a transaction with another amount."""
        assert is_duplicate(candidate(amount=-87.44), owner_id) is False

    def test_prefix_is_case_sensitive(self, owner_id, stored):
        """Should not flag a description differing only in case."""
        assert is_duplicate(candidate(STORED_DESCRIPTION.lower()), owner_id) is False

    def test_other_owner(self, stored):
        """Should not flag another owner's identical transaction."""
        assert is_duplicate(candidate(), "someone-else") is False

    def test_nothing_stored(self, owner_id):
        """Should not flag anything for an owner with no transactions."""
        assert is_duplicate(candidate(), owner_id) is False

    def test_short_description_exact_match(self, owner_id):
        """Should compare descriptions shorter than the prefix length in full."""
        db.bulk_insert_transactions(
            [Transaction(owner_id=owner_id, date=date(2024, 3, 1), description="ATM", amount=-40, type="EXPENSE")]
        )

        assert is_duplicate(candidate("ATM", amount=-40), owner_id) is True
        assert is_duplicate(candidate("ATX", amount=-40), owner_id) is False
