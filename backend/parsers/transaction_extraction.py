"""LLM-based extraction of transactions from statement text."""

import json
import logging

from backend.models import ExtractedTransaction, ExtractionResult
from backend.parsers.llm_client import llm_extract_json

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You are a financial data extraction assistant. Extract ALL transactions from this bank statement.

RULES:
1. Extract EVERY transaction (income and expenses)
2. Format dates as YYYY-MM-DD
3. Use positive numbers for income, negative for expenses
4. Clean up merchant names (remove store numbers, reference codes, card numbers like XX1234)
5. Ignore headers, footers, balances, summary rows and other non-transaction text
6. If amount has "+" it's INCOME, if "-" or no sign it's EXPENSE
7. "type" must agree with the sign of "amount"

IMPORTANT - REFUNDS:
- If you see "refund", "credit", "return", or "reversal" → treat as INCOME (positive amount),
  even when the statement lists it in a debit column
- Example: "Amazon Refund $50" → amount: 50, type: INCOME
- Example: "Walmart Return $25" → amount: 25, type: INCOME

Respond with a JSON object matching this JSON schema, nothing else:
{schema}

Example: {{"transactions": [{{"date": "2024-01-05", "description": "STARBUCKS", "amount": -5.50, "type": "EXPENSE"}}]}}

Bank Statement Text:
{text}

Extract all transactions now."""


def build_extraction_prompt(text: str) -> str:
    """Build the extraction prompt for a statement's text."""
    schema = json.dumps(ExtractionResult.model_json_schema())
    return EXTRACTION_PROMPT.format(schema=schema, text=text)


async def extract_transactions(text: str) -> list[ExtractedTransaction]:
    """
    Structure statement text into transactions with the language model.

    Raises:
        AiExtractionError: If the model call fails or its output does not
            validate against ExtractionResult
    """
    logger.info(f"Extracting transactions from {len(text)} characters of text")

    result = await llm_extract_json(build_extraction_prompt(text), ExtractionResult)

    logger.info(f"Extracted {len(result.transactions)} transactions")
    if result.transactions:
        logger.debug(f"Sample transaction: {result.transactions[0].model_dump_json()}")
    return result.transactions
