"""
PantryPal Recipe Query Builder
Turns raw catalog query-string parameters into a filter, a sort order and a page window
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from models.recipe_models import Recipe

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps (page - 1) * limit well inside a signed 64-bit OFFSET
MAX_PAGE = 2 ** 31
DEFAULT_SORT = "newest"

# Spelled out instead of \b / \y so PostgreSQL, MySQL and SQLite agree
WORD_CHARS = "A-Za-z0-9_"

_REGEX_SPECIAL = re.compile(r"[.*+?^${}()|[\]\\]")

SORT_ORDERS = {
    "newest": (Recipe.created_at.desc(), Recipe.id.desc()),
    "oldest": (Recipe.created_at.asc(), Recipe.id.asc()),
    "likes": (Recipe.likes.desc(), Recipe.created_at.desc(), Recipe.id.desc()),
    "time": (Recipe.cooking_time.asc(), Recipe.created_at.desc(), Recipe.id.desc()),
}

SEARCH_COLUMNS = (
    Recipe.title,
    Recipe.ingredients,
    Recipe.steps,
    Recipe.cuisine,
    Recipe.diet_type,
)


def escape_regex(value: str) -> str:
    """Escape regex metacharacters in user input"""
    return _REGEX_SPECIAL.sub(lambda m: "\\" + m.group(0), value)


def whole_word_pattern(term: str) -> str:
    """Case-insensitive pattern matching term only at word boundaries"""
    return f"(?i)(^|[^{WORD_CHARS}]){escape_regex(term)}([^{WORD_CHARS}]|$)"


def exact_pattern(term: str) -> str:
    """Case-insensitive pattern matching the whole field"""
    return f"(?i)^{escape_regex(term)}$"


def matches_word(column, term: str) -> ColumnElement[bool]:
    return column.regexp_match(whole_word_pattern(term))


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_positive_int(value: Any, default: int, ceiling: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    return min(max(1, number), ceiling)


def _parse_max_time(value: Any) -> Optional[float]:
    cleaned = _clean(value)
    if cleaned is None:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def split_terms(value: Any) -> List[str]:
    """Comma-separated list, trimmed, empties dropped"""
    cleaned = _clean(value)
    if cleaned is None:
        return []
    return [term.strip() for term in cleaned.split(",") if term.strip()]


@dataclass
class RecipeQuery:
    """Compiled catalog query"""
    conditions: List[ColumnElement[bool]] = field(default_factory=list)
    sort: str = DEFAULT_SORT
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def where_clause(self) -> ColumnElement[bool]:
        if not self.conditions:
            return true()
        return and_(*self.conditions)

    @property
    def order_by(self) -> Tuple:
        return SORT_ORDERS[self.sort]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


def build_recipe_query(
    search: Any = None,
    cuisine: Any = None,
    diet_type: Any = None,
    ingredients: Any = None,
    max_time: Any = None,
    sort: Any = None,
    page: Any = None,
    limit: Any = None,
) -> RecipeQuery:
    """
    Build the catalog query from raw parameters

    Blank or malformed filters are ignored rather than rejected; every
    contributed predicate is ANDed.
    """
    query = RecipeQuery(
        page=_parse_positive_int(page, DEFAULT_PAGE, MAX_PAGE),
        limit=_parse_positive_int(limit, DEFAULT_LIMIT, MAX_LIMIT),
    )

    sort_key = _clean(sort)
    if sort_key in SORT_ORDERS:
        query.sort = sort_key

    term = _clean(search)
    if term:
        query.conditions.append(or_(*(matches_word(column, term) for column in SEARCH_COLUMNS)))

    diet = _clean(diet_type)
    if diet:
        query.conditions.append(Recipe.diet_type.regexp_match(exact_pattern(diet)))

    for ingredient in split_terms(ingredients):
        query.conditions.append(matches_word(Recipe.ingredients, ingredient))

    cuisine_term = _clean(cuisine)
    if cuisine_term:
        query.conditions.append(matches_word(Recipe.cuisine, cuisine_term))

    limit_minutes = _parse_max_time(max_time)
    if limit_minutes is not None:
        query.conditions.append(Recipe.cooking_time <= limit_minutes)

    return query
