"""Data models for the finance tracker backend."""

import datetime
from datetime import date
from enum import Enum
from typing import Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class TransactionType(str, Enum):
    """Direction of a transaction."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Confidence(str, Enum):
    """How confident the import is in a candidate's suggested category."""

    HIGH = "high"
    MEDIUM = "medium"


class SignedAmountModel(CamelModel):
    """
    Base for every model carrying an ``amount`` and a ``type``.

    The type is authoritative: income amounts are made non-negative and
    expense amounts non-positive, whatever sign the source supplied.
    """

    @model_validator(mode="after")
    def _align_amount_sign(self):
        magnitude = abs(self.amount)
        if magnitude == 0:
            self.amount = 0.0
        elif self.type == TransactionType.INCOME:
            self.amount = magnitude
        else:
            self.amount = -magnitude
        return self


class ExtractedTransaction(SignedAmountModel):
    """A transaction as structured by the language model."""

    date: date
    description: str = Field(min_length=1, max_length=500)
    amount: float = Field(allow_inf_nan=False)
    type: TransactionType


class ExtractionResult(BaseModel):
    """Structured output schema for transaction extraction."""

    transactions: list[ExtractedTransaction]


class CandidateTransaction(ExtractedTransaction):
    """An extracted transaction enriched for user review."""

    id: str = Field(default_factory=lambda: uuid4().hex[:10])  # Client-side list key only
    suggested_category_id: str | None = None
    is_duplicate: bool = False
    confidence: Confidence = Confidence.MEDIUM


class ImportSummary(CamelModel):
    """Aggregate counts over a batch of candidates."""

    total: int = 0
    categorized: int = 0
    uncategorized: int = 0
    duplicates: int = 0

    @classmethod
    def from_candidates(cls, candidates: list[CandidateTransaction]) -> "ImportSummary":
        categorized = sum(1 for c in candidates if c.suggested_category_id)
        return cls(
            total=len(candidates),
            categorized=categorized,
            uncategorized=len(candidates) - categorized,
            duplicates=sum(1 for c in candidates if c.is_duplicate),
        )


class ImportPreview(CamelModel):
    """Result of running a statement through the import pipeline."""

    transactions: list[CandidateTransaction]
    summary: ImportSummary


class TransactionCreate(SignedAmountModel):
    """Transaction data for creation. A missing currency gets the default."""

    date: date
    description: str = Field(min_length=1, max_length=500)
    amount: float = Field(allow_inf_nan=False)
    type: TransactionType
    category_id: str | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class ConfirmTransaction(TransactionCreate):
    """A user-approved transaction submitted from an import preview."""


class TransactionUpdate(CamelModel):
    """Partial transaction update; only fields sent by the client change."""

    date: datetime.date | None = None  # Shadows the type name once defaulted
    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: float | None = Field(default=None, allow_inf_nan=False)
    type: TransactionType | None = None
    category_id: str | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class ConfirmImportRequest(CamelModel):
    """Body of the confirm endpoint."""

    transactions: list[ConfirmTransaction]


class ConfirmImportResult(CamelModel):
    """Number of transactions saved by a confirm call."""

    count: int


class Category(CamelModel):
    """A user-defined transaction category."""

    id: str
    owner_id: str
    name: str
    type: TransactionType


class CategoryCreate(CamelModel):
    """Category data for creation."""

    name: str = Field(min_length=1, max_length=50)
    type: TransactionType


class CategoryUpdate(CamelModel):
    """Category rename. The type of a category cannot change."""

    name: str | None = Field(default=None, min_length=1, max_length=50)


class Transaction(SignedAmountModel):
    """A persisted financial transaction."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str
    date: date
    description: str = Field(min_length=1, max_length=500)
    amount: float = Field(allow_inf_nan=False)
    type: TransactionType
    category_id: str | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)


class BudgetPeriod(str, Enum):
    """How often a budget resets."""

    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class DateRangeModel(CamelModel):
    """Base for models with an optional ``start_date``/``end_date`` pair."""

    @model_validator(mode="after")
    def _check_date_range(self):
        start, end = getattr(self, "start_date", None), getattr(self, "end_date", None)
        if start is not None and end is not None and end <= start:
            raise ValueError("End date must be after start date")
        return self


class BudgetCreate(DateRangeModel):
    """Budget data for creation. Missing dates default to the current month."""

    category_id: str
    amount: float = Field(gt=0, allow_inf_nan=False)
    period: BudgetPeriod
    start_date: date | None = None
    end_date: date | None = None


class BudgetUpdate(DateRangeModel):
    """Partial budget update."""

    amount: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    period: BudgetPeriod | None = None
    start_date: date | None = None
    end_date: date | None = None


class Budget(DateRangeModel):
    """A spending limit on one of the owner's categories."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str
    category_id: str
    amount: float = Field(gt=0, allow_inf_nan=False)
    period: BudgetPeriod
    start_date: date
    end_date: date


class ApiResponse(CamelModel, Generic[DataT]):
    """Success envelope returned by the API."""

    success: bool = True
    message: str = "Success"
    data: DataT
