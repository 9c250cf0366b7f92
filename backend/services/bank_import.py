"""Bank statement import: preview (extract, structure, enrich) and confirm."""

import asyncio
import logging
import sqlite3

from pydantic import ValidationError

from backend.config import settings
from backend.db.sqlite import db
from backend.errors import CommitError
from backend.models import (
    CandidateTransaction,
    Confidence,
    ConfirmImportResult,
    ConfirmTransaction,
    ExtractedTransaction,
    ImportPreview,
    ImportSummary,
    Transaction,
)
from backend.parsers.document_text import extract_text
from backend.parsers.transaction_extraction import extract_transactions
from backend.services.categorizer import suggest_category
from backend.services.dedup import is_duplicate

logger = logging.getLogger(__name__)


async def process_statement(contents: bytes, mime_type: str, owner_id: str) -> ImportPreview:
    """
    Run an uploaded statement through the import pipeline.

    Steps:
        1. Extract text from the PDF or CSV (OCR fallback for scanned PDFs)
        2. Structure the text into transactions with the language model
        3. Suggest a category and flag duplicates for every transaction
        4. Summarize the batch

    Nothing is saved; the user reviews the preview and confirms a subset.
    """
    logger.info(f"Starting statement import for owner {owner_id} ({mime_type}, {len(contents)} bytes)")

    text = await asyncio.to_thread(extract_text, contents, mime_type)
    logger.info(f"Step 1 complete: {len(text)} characters of text")

    extracted = await extract_transactions(text)
    logger.info(f"Step 2 complete: {len(extracted)} transactions extracted")

    # gather preserves input order
    candidates = list(await asyncio.gather(*(enrich_transaction(txn, owner_id) for txn in extracted)))

    summary = ImportSummary.from_candidates(candidates)
    logger.info(
        f"Import complete: {summary.total} total, {summary.categorized} categorized, "
        f"{summary.uncategorized} uncategorized, {summary.duplicates} duplicates"
    )
    return ImportPreview(transactions=candidates, summary=summary)


async def enrich_transaction(transaction: ExtractedTransaction, owner_id: str) -> CandidateTransaction:
    """Attach a suggested category, duplicate flag and client-side id."""
    suggested_category_id, duplicate = await asyncio.gather(
        asyncio.to_thread(suggest_category, transaction.description, owner_id),
        asyncio.to_thread(is_duplicate, transaction, owner_id),
    )

    return CandidateTransaction(
        **transaction.model_dump(),
        suggested_category_id=suggested_category_id,
        is_duplicate=duplicate,
        confidence=Confidence.HIGH if suggested_category_id else Confidence.MEDIUM,
    )


def save_transactions(transactions: list[ConfirmTransaction], owner_id: str) -> ConfirmImportResult:
    """
    Save user-confirmed transactions as one batch.

    Duplicates are not re-checked here; the caller decides what to send.

    Raises:
        CommitError: If any row is invalid, references a category the owner does
            not have, or the insert fails; nothing is saved
    """
    try:
        rows = [
            Transaction(
                owner_id=owner_id,
                date=txn.date,
                description=txn.description,
                amount=txn.amount,
                type=txn.type,
                category_id=txn.category_id,
                currency=txn.currency or settings.default_currency,
            )
            for txn in transactions
        ]
        count = db.bulk_insert_transactions(rows)
    except (sqlite3.Error, ValidationError, ValueError) as e:
        logger.error(f"Failed to save {len(transactions)} transactions for owner {owner_id}: {e}")
        raise CommitError(f"Failed to save transactions: {e}") from e

    logger.info(f"Saved {count} transactions for owner {owner_id}")
    return ConfirmImportResult(count=count)
