"""Duplicate detection against stored transactions."""

import logging

from backend.config import settings
from backend.db.sqlite import db
from backend.models import ExtractedTransaction

logger = logging.getLogger(__name__)


def description_prefix(description: str, length: int | None = None) -> str:
    """Leading characters of a description used for fuzzy matching."""
    return description[: length or settings.duplicate_prefix_length]


def is_duplicate(transaction: ExtractedTransaction, owner_id: str) -> bool:
    """
    Check whether a transaction already exists for this owner.

    A stored transaction is a duplicate when it has the same date, the same
    amount, and a description starting with the same prefix (case-sensitive).
    Different dates or a different prefix are not caught.
    """
    existing = db.find_transaction_by_owner_date_amount_prefix(
        owner_id,
        transaction.date,
        transaction.amount,
        description_prefix(transaction.description),
    )

    if existing is not None:
        logger.info(f"Found duplicate: {transaction.description}")
        return True
    return False
