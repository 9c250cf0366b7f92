"""Budgets: spending limits per category and period."""

import calendar
import logging
from datetime import date

from pydantic import ValidationError

from backend.db.sqlite import db
from backend.errors import ConflictError, InvalidRequestError, NotFoundError
from backend.models import Budget, BudgetCreate, BudgetUpdate

logger = logging.getLogger(__name__)


def month_bounds(today: date | None = None) -> tuple[date, date]:
    """First and last day of the month containing ``today``."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def list_budgets(owner_id: str) -> list[Budget]:
    return db.find_budgets_by_owner(owner_id)


def create_budget(owner_id: str, data: BudgetCreate, today: date | None = None) -> Budget:
    """
    Create a budget on one of the owner's categories.

    Missing dates default to the current month.

    Raises:
        NotFoundError: If the category is not the owner's
        ConflictError: If the category already has a budget for this period
        InvalidRequestError: If a defaulted date ends up before the other
    """
    if db.get_category(owner_id, data.category_id) is None:
        raise NotFoundError("Category not found")

    month_start, month_end = month_bounds(today)
    try:
        budget = Budget(
            owner_id=owner_id,
            category_id=data.category_id,
            amount=data.amount,
            period=data.period,
            start_date=data.start_date or month_start,
            end_date=data.end_date or month_end,
        )
    except ValidationError as e:
        raise InvalidRequestError("End date must be after start date") from e

    try:
        db.add_budget(budget)
    except ValueError as e:
        raise ConflictError(str(e)) from e

    logger.info(f"Created {budget.period.value} budget of {budget.amount} on category {budget.category_id}")
    return budget


def update_budget(owner_id: str, budget_id: str, data: BudgetUpdate) -> Budget:
    """Apply the fields the client sent to a stored budget."""
    existing = db.get_budget(owner_id, budget_id)
    if existing is None:
        raise NotFoundError("Budget not found")

    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    try:
        updated = Budget(**{**existing.model_dump(), **changes})
    except ValidationError as e:
        raise InvalidRequestError("End date must be after start date") from e

    try:
        db.update_budget(updated)
    except ValueError as e:
        raise ConflictError(str(e)) from e
    return updated


def delete_budget(owner_id: str, budget_id: str) -> None:
    if not db.delete_budget(owner_id, budget_id):
        raise NotFoundError("Budget not found")
    logger.info(f"Deleted budget {budget_id} for owner {owner_id}")
