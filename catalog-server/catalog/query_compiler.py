"""
Compile free-form product list parameters into a deterministic QuerySpec.

Recognised parameters:
  name              case-insensitive substring of the product name
  referenced_name   case-insensitive substring of the referenced name
  categories        repeatable; a product matches if it carries ANY of them
  order             price_asc | price_desc | date_asc | date_desc

Absent or empty parameters omit their filter. An unknown `order` falls back
to date_desc. Compilation never fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union


class SortKey(str, Enum):
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    DATE_ASC = "date_asc"
    DATE_DESC = "date_desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """Map an `order` value to a SortKey; anything unrecognised is DATE_DESC."""
        try:
            return cls(value)
        except ValueError:
            return cls.DATE_DESC


class TextField(str, Enum):
    NAME = "name"
    REFERENCED_NAME = "referenced_name"


@dataclass(frozen=True)
class SubstringPredicate:
    """Case-insensitive containment of `value` in a text column."""
    field: TextField
    value: str


@dataclass(frozen=True)
class CategoryMembershipPredicate:
    """True when any of `categories` is an element of the record's categories (OR group)."""
    categories: Tuple[str, ...]


Predicate = Union[SubstringPredicate, CategoryMembershipPredicate]


@dataclass(frozen=True)
class QuerySpec:
    name_substring: Optional[str] = None
    referenced_name_substring: Optional[str] = None
    categories: Tuple[str, ...] = field(default_factory=tuple)
    sort_key: SortKey = SortKey.DATE_DESC

    @property
    def predicates(self) -> List[Predicate]:
        """Predicates in composition order; all of them are AND-combined."""
        predicates: List[Predicate] = []
        if self.name_substring:
            predicates.append(SubstringPredicate(TextField.NAME, self.name_substring))
        if self.referenced_name_substring:
            predicates.append(
                SubstringPredicate(TextField.REFERENCED_NAME, self.referenced_name_substring)
            )
        if self.categories:
            predicates.append(CategoryMembershipPredicate(self.categories))
        return predicates


def _first(value: Any) -> Optional[str]:
    """Single-valued parameter: the first value wins when a list is given."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
        if value is None:
            return None
    value = str(value)
    return value or None


def _all(value: Any) -> Tuple[str, ...]:
    """Repeatable parameter: non-empty values, first occurrence order, no duplicates."""
    if value is None:
        return ()
    values: Iterable[Any] = [value] if isinstance(value, str) else value
    seen = {}
    for v in values:
        if v is None:
            continue
        v = str(v)
        if v and v not in seen:
            seen[v] = None
    return tuple(seen)


def compile_query(params: Mapping[str, Any]) -> QuerySpec:
    """Build the QuerySpec for a product listing request."""
    return QuerySpec(
        name_substring=_first(params.get("name")),
        referenced_name_substring=_first(params.get("referenced_name")),
        categories=_all(params.get("categories")),
        sort_key=SortKey.parse(_first(params.get("order"))),
    )
