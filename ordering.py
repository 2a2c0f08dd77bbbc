from typing import Mapping, Optional

from models import INCOME_KEY, SAVING_KEY, Budget, Category, category_key

DEFAULT_CATEGORY_ORDER = (
    "giving",
    "household",
    "transportation",
    "food",
    "personal",
    "insurance",
)
MISSING_ORDER = 999

CATEGORY_EMOJI = {
    "income": "💰",
    "giving": "🤲",
    "household": "🏠",
    "transportation": "🚗",
    "food": "🍽️",
    "personal": "👤",
    "insurance": "🛡️",
    "saving": "💵",
}
CUSTOM_CATEGORY_EMOJI = "📁"


def _sort_key(key: str, category: Optional[Category]) -> tuple[int, int, str]:
    normalized = category_key(key)
    if normalized == INCOME_KEY:
        return (0, 0, normalized)
    if normalized == SAVING_KEY:
        return (3, 0, normalized)
    if normalized in DEFAULT_CATEGORY_ORDER:
        return (1, DEFAULT_CATEGORY_ORDER.index(normalized), normalized)
    order = MISSING_ORDER
    if category is not None and category.order is not None:
        order = category.order
    # key breaks ties so equal custom orders still sort deterministically
    return (2, order, normalized)


def order_category_keys(categories: Mapping[str, Category]) -> list[str]:
    """Display order: income, default categories, custom by ``order``, saving."""
    return sorted(categories, key=lambda key: _sort_key(key, categories.get(key)))


def order_categories(budget: Budget) -> list[str]:
    return order_category_keys(budget.categories)


def category_emoji(category: Category) -> str:
    if category.key in CATEGORY_EMOJI:
        return CATEGORY_EMOJI[category.key]
    return category.emoji or CUSTOM_CATEGORY_EMOJI


def display_name(category: Category) -> str:
    emoji = category.emoji or category_emoji(category)
    return f"{emoji} {category.name}"
