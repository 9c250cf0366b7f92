"""Manual transaction management: create, read, edit and delete single rows."""

import logging

from backend.config import settings
from backend.db.sqlite import db
from backend.errors import NotFoundError
from backend.models import Transaction, TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)


def get_transaction(owner_id: str, transaction_id: str) -> Transaction:
    transaction = db.get_transaction(owner_id, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def create_transaction(owner_id: str, data: TransactionCreate) -> Transaction:
    """
    Save one transaction for the owner.

    Raises:
        NotFoundError: If the category is not one of the owner's
    """
    transaction = Transaction(
        owner_id=owner_id,
        date=data.date,
        description=data.description,
        amount=data.amount,
        type=data.type,
        category_id=data.category_id,
        currency=data.currency or settings.default_currency,
    )
    try:
        db.bulk_insert_transactions([transaction])
    except ValueError as e:
        raise NotFoundError("Category not found") from e
    return transaction


def update_transaction(owner_id: str, transaction_id: str, data: TransactionUpdate) -> Transaction:
    """
    Apply the fields the client sent to a stored transaction.

    The amount sign is re-derived from the resulting type, so switching a
    row to INCOME flips a negative amount. Sending ``categoryId: null``
    clears the category; a null currency resets it to the default.

    Raises:
        NotFoundError: If the transaction or the new category is not the owner's
    """
    existing = get_transaction(owner_id, transaction_id)

    changes = data.model_dump(exclude_unset=True)
    if "currency" in changes and changes["currency"] is None:
        changes["currency"] = settings.default_currency
    # Other nulls mean "leave as is"
    changes = {k: v for k, v in changes.items() if v is not None or k == "category_id"}

    updated = Transaction(**{**existing.model_dump(), **changes})
    try:
        found = db.update_transaction(updated)
    except ValueError as e:
        raise NotFoundError("Category not found") from e
    if not found:
        raise NotFoundError("Transaction not found")

    logger.info(f"Updated transaction {transaction_id} ({', '.join(changes) or 'no changes'})")
    return updated


def delete_transaction(owner_id: str, transaction_id: str) -> None:
    if not db.delete_transaction(owner_id, transaction_id):
        raise NotFoundError("Transaction not found")
    logger.info(f"Deleted transaction {transaction_id} for owner {owner_id}")
