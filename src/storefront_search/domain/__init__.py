"""Domain layer - catalog business rules with no infrastructure dependencies.

This layer contains:
- Entities and projections: ``Product``, ``ProductSummary``
- Value objects: ``FilterCriteria``, ``SortOrder`` and the predicate tree
- The error taxonomy shared by every layer above it
"""

from storefront_search.domain.criteria import ALL_CATEGORIES, PRICE_RANGES, FilterCriteria, PriceRange, SortKey
from storefront_search.domain.errors import (
    CatalogError,
    ProductNotFoundError,
    QueryValidationError,
    StoreUnavailableError,
)
from storefront_search.domain.model import Category, Product, ProductDraft, ProductSummary
from storefront_search.domain.ordering import NEWEST_FIRST, RATING_DESC, SortOrder, resolve_sort
from storefront_search.domain.predicates import (
    AllOf,
    AnyOf,
    ContainsText,
    FieldEquals,
    FieldRange,
    MatchAll,
    Predicate,
    build_listing_predicate,
    build_suggestion_predicate,
)


__all__ = [
    "ALL_CATEGORIES",
    "NEWEST_FIRST",
    "PRICE_RANGES",
    "RATING_DESC",
    "AllOf",
    "AnyOf",
    "CatalogError",
    "Category",
    "ContainsText",
    "FieldEquals",
    "FieldRange",
    "FilterCriteria",
    "MatchAll",
    "Predicate",
    "PriceRange",
    "Product",
    "ProductDraft",
    "ProductNotFoundError",
    "ProductSummary",
    "QueryValidationError",
    "SortKey",
    "SortOrder",
    "StoreUnavailableError",
    "build_listing_predicate",
    "build_suggestion_predicate",
    "resolve_sort",
]
