"""GraphQL input objects and enums."""

from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import strawberry

from ..execution import Pagination
from ..services import StatsPeriod as StatsPeriodEnum

ORDER_TOKENS = [
    "NAME_ASC",
    "NAME_DESC",
    "CREATED_AT_ASC",
    "CREATED_AT_DESC",
    "VISITS_DESC",
    "RATING_DESC",
    "POPULARITY",
    "VISITED_AT_DESC",
    "VISITED_AT_ASC",
]

OrderBy = strawberry.enum(
    Enum("OrderBy", {token: token for token in ORDER_TOKENS}),
    description="Sort order; services fall back to their default for tokens they do not support"
)

StatsPeriod = strawberry.enum(StatsPeriodEnum, name="StatsPeriod")


def to_filters(filter_input: Any) -> Dict[str, Any]:
    """Filter input object to the builder's filter mapping."""
    if filter_input is None:
        return {}
    return {f.name: getattr(filter_input, f.name) for f in fields(filter_input)}


def to_pagination(pagination: Optional["PaginationInput"]) -> Optional[Pagination]:
    if pagination is None:
        return None
    return Pagination(limit=pagination.limit, offset=pagination.offset)


def to_order(order_by: Optional[Enum]) -> Optional[str]:
    return order_by.value if order_by is not None else None


def to_data(write_input: Any, exclude: tuple = ()) -> Dict[str, Any]:
    """Columns set on a write input, skipping unset (None) fields."""
    return {
        f.name: getattr(write_input, f.name)
        for f in fields(write_input)
        if f.name not in exclude and getattr(write_input, f.name) is not None
    }


@strawberry.input
class PaginationInput:
    limit: Optional[int] = None
    offset: Optional[int] = None


@strawberry.input
class ContinentFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None
    code: Optional[str] = None


@strawberry.input
class CountryFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None
    continent_id: Optional[int] = None
    iso_code: Optional[str] = None


@strawberry.input
class DestinationFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None
    country_id: Optional[int] = None
    type_id: Optional[int] = None
    continent_id: Optional[int] = None
    latitude_min: Optional[float] = None
    latitude_max: Optional[float] = None
    longitude_min: Optional[float] = None
    longitude_max: Optional[float] = None
    created_at_min: Optional[datetime] = None
    created_at_max: Optional[datetime] = None


@strawberry.input
class CategoryFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None


@strawberry.input
class HighlightFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None
    destination_id: Optional[int] = None


@strawberry.input
class UserFilter:
    ids: Optional[List[int]] = None
    search: Optional[str] = None
    locale: Optional[str] = None


@strawberry.input
class VisitFilter:
    ids: Optional[List[int]] = None
    user_id: Optional[int] = None
    destination_id: Optional[int] = None
    rating: Optional[int] = None
    rating_min: Optional[int] = None
    rating_max: Optional[int] = None
    visited_at_min: Optional[datetime] = None
    visited_at_max: Optional[datetime] = None


@strawberry.input
class DestinationInput:
    country_id: int
    name: str
    slug: str
    type_id: Optional[int] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    category_ids: Optional[List[int]] = None


@strawberry.input
class DestinationUpdateInput:
    """Only the fields that are set are written; ``category_ids`` replaces all links."""
    country_id: Optional[int] = None
    type_id: Optional[int] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    category_ids: Optional[List[int]] = None


@strawberry.input
class CategoryInput:
    name: str
    description: Optional[str] = None


@strawberry.input
class VisitInput:
    user_id: int
    destination_id: int
    visited_at: datetime
    rating: Optional[int] = None
    notes: Optional[str] = None
