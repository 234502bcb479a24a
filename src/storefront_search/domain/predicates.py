"""Composable catalog predicates.

A predicate is a small immutable tree. The domain evaluates it directly with
``matches``; store adapters walk the same tree to compile a native query, so
both paths agree on what a filter means.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from storefront_search.domain.errors import QueryValidationError


if TYPE_CHECKING:
    from storefront_search.domain.criteria import FilterCriteria
    from storefront_search.domain.model import Product


TEXT_FIELDS = frozenset({"name", "description", "category"})
NUMERIC_FIELDS = frozenset({"price", "rating"})
LISTING_SEARCH_FIELDS = ("name", "description", "category")


def field_value(product: Product, field: str) -> object:
    value = getattr(product, field)
    if isinstance(value, Enum):
        return value.value
    return value


class Predicate(ABC):
    """Boolean condition over a product."""

    @abstractmethod
    def matches(self, product: Product) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class MatchAll(Predicate):
    def matches(self, product: Product) -> bool:
        return True


@dataclass(frozen=True)
class FieldEquals(Predicate):
    field: str
    value: str

    def matches(self, product: Product) -> bool:
        return field_value(product, self.field) == self.value


@dataclass(frozen=True)
class FieldRange(Predicate):
    """Inclusive numeric range; a missing bound is unbounded on that side."""

    field: str
    lower: float | None = None
    upper: float | None = None

    def __post_init__(self) -> None:
        if self.field not in NUMERIC_FIELDS:
            raise ValueError(f"Unsupported range field: {self.field}")

    def matches(self, product: Product) -> bool:
        value = field_value(product, self.field)
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value > self.upper:
            return False
        return True


@dataclass(frozen=True)
class ContainsText(Predicate):
    """Case-insensitive substring match; a missing field value never matches."""

    field: str
    text: str

    def __post_init__(self) -> None:
        if self.field not in TEXT_FIELDS:
            raise ValueError(f"Unsupported text field: {self.field}")

    def matches(self, product: Product) -> bool:
        value = field_value(product, self.field)
        if value is None:
            return False
        return contains_casefold(str(value), self.text)


@dataclass(frozen=True)
class AllOf(Predicate):
    clauses: tuple[Predicate, ...]

    def matches(self, product: Product) -> bool:
        return all(clause.matches(product) for clause in self.clauses)


@dataclass(frozen=True)
class AnyOf(Predicate):
    clauses: tuple[Predicate, ...]

    def matches(self, product: Product) -> bool:
        return any(clause.matches(product) for clause in self.clauses)


def contains_casefold(haystack: str, needle: str) -> bool:
    return needle.casefold() in haystack.casefold()


def build_listing_predicate(criteria: FilterCriteria) -> Predicate:
    """Compose the listing predicate as the AND of every present criterion.

    The free-text term becomes an OR sub-clause over name, description and
    category. With no criteria the result is ``MatchAll``.
    """
    clauses: list[Predicate] = []
    if criteria.category is not None:
        clauses.append(FieldEquals("category", criteria.category.value))
    if criteria.min_price is not None or criteria.max_price is not None:
        clauses.append(FieldRange("price", criteria.min_price, criteria.max_price))
    if criteria.search_term:
        clauses.append(AnyOf(tuple(ContainsText(field, criteria.search_term) for field in LISTING_SEARCH_FIELDS)))

    if not clauses:
        return MatchAll()
    if len(clauses) == 1:
        return clauses[0]
    return AllOf(tuple(clauses))


def build_suggestion_predicate(term: str | None) -> Predicate:
    """Name-only substring match used for autosuggest."""
    cleaned = (term or "").strip()
    if not cleaned:
        raise QueryValidationError("Search query is required")
    return ContainsText("name", cleaned)
