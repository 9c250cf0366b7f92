"""Keyword-based category suggestions for imported transactions."""

import logging
from collections.abc import Iterable, Mapping

from backend.db.sqlite import db
from backend.models import Category

logger = logging.getLogger(__name__)

# Category name -> lowercase substrings that suggest it.
# Matched against user category *names*, so only categories named exactly
# like a key can ever be suggested.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Groceries": ["walmart", "target", "kroger", "safeway", "whole foods", "grocery", "supermarket"],
    "Dining": ["restaurant", "cafe", "pizza", "mcdonald", "starbucks", "chipotle", "burger", "food"],
    "Transport": ["uber", "lyft", "gas", "fuel", "shell", "chevron", "parking", "transit"],
    "Utilities": ["electric", "water", "internet", "phone", "verizon", "at&t", "utility"],
    "Entertainment": ["netflix", "spotify", "hulu", "movie", "theater", "concert", "game"],
    "Shopping": ["amazon", "ebay", "best buy", "mall", "store", "shop"],
    "Healthcare": ["pharmacy", "doctor", "hospital", "medical", "health"],
    "Education": ["school", "university", "course", "tuition", "book"],
}


def match_category(
    description: str,
    categories: Iterable[Category],
    keywords: Mapping[str, list[str]] = CATEGORY_KEYWORDS,
) -> str | None:
    """
    Return the id of the first category whose keywords appear in the description.

    Categories are tried in the order given; the first hit wins.
    """
    description_lower = description.lower()

    for category in categories:
        category_keywords = keywords.get(category.name) or []
        if any(kw in description_lower for kw in category_keywords):
            return category.id

    return None


def suggest_category(
    description: str,
    owner_id: str,
    keywords: Mapping[str, list[str]] = CATEGORY_KEYWORDS,
) -> str | None:
    """Suggest one of the owner's categories for a transaction description."""
    categories = db.find_categories_by_owner(owner_id)
    category_id = match_category(description, categories, keywords)

    if category_id:
        name = next(c.name for c in categories if c.id == category_id)
        logger.info(f"Matched '{description}' to category '{name}'")
    else:
        logger.info(f"No category match for '{description}'")

    return category_id
