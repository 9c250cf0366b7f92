"""Category management for an owner."""

import logging

from backend.db.sqlite import db
from backend.errors import ConflictError, NotFoundError
from backend.models import Category, CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def create_category(owner_id: str, data: CategoryCreate) -> Category:
    """Create a category, rejecting a name already used for the same type."""
    try:
        category = db.add_category(owner_id, data)
    except ValueError as e:
        raise ConflictError(str(e)) from e
    logger.info(f"Created {category.type.value} category '{category.name}' for owner {owner_id}")
    return category


def update_category(owner_id: str, category_id: str, data: CategoryUpdate) -> Category:
    """Rename a category. An empty update returns the category unchanged."""
    category = db.get_category(owner_id, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    if data.name is None or data.name == category.name:
        return category

    try:
        updated = db.rename_category(owner_id, category_id, data.name)
    except ValueError as e:
        raise ConflictError(str(e)) from e
    if updated is None:
        raise NotFoundError("Category not found")
    return updated


def delete_category(owner_id: str, category_id: str) -> None:
    if not db.delete_category(owner_id, category_id):
        raise NotFoundError("Category not found")
    logger.info(f"Deleted category {category_id} for owner {owner_id}")
