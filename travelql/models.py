"""Typed entity records produced from database rows."""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound="Entity")


@dataclass
class Entity:
    """Base record. Unknown row columns are ignored when mapping."""

    id: int

    @classmethod
    def from_row(cls: Type[E], row: Dict[str, Any]) -> E:
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in names})


@dataclass
class Continent(Entity):
    name: str
    slug: str
    code: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Country(Entity):
    continent_id: int
    name: str
    iso_code: str
    iso_code3: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Destination(Entity):
    country_id: int
    name: str
    slug: str
    type_id: Optional[int] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class DestinationType(Entity):
    name: str
    description: Optional[str] = None
    icon_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Category(Entity):
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Highlight(Entity):
    destination_id: int
    name: str
    slug: str
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class User(Entity):
    username: str
    email: str
    picture: Optional[str] = None
    locale: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Language(Entity):
    code: str
    name: str
    native_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Visit(Entity):
    user_id: int
    destination_id: int
    visited_at: datetime
    rating: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class DestinationStats:
    """Visit aggregates for one destination."""

    destination_id: int
    visit_count: int = 0
    average_rating: Optional[float] = None
