"""GraphQL object types. Relationship fields resolve through the request's loaders."""

from dataclasses import fields
from datetime import datetime
from typing import Any, List, Optional, Type, TypeVar

import strawberry
from strawberry.types import Info

from ..exceptions import NotFoundError
from ..loaders import BatchLoader

T = TypeVar("T", bound="EntityType")


class EntityType:
    """Mixin mapping an entity record onto a strawberry type of the same fields."""

    @classmethod
    def from_entity(cls: Type[T], entity: Any) -> T:
        return cls(**{f.name: getattr(entity, f.name) for f in fields(cls) if f.init and hasattr(entity, f.name)})


async def load_one(loader: BatchLoader, key: Optional[Any], type_: Type[T]) -> Optional[T]:
    """Resolve a nullable to-one relation; a missing row resolves to None."""
    if key is None:
        return None
    try:
        entity = await loader.load(key)
    except NotFoundError:
        return None
    return type_.from_entity(entity)


async def load_children(relation: BatchLoader, loader: BatchLoader, parent_id: int, type_: Type[T]) -> List[T]:
    """Resolve a to-many relation: child ids first, then the children in one batch.

    Children that no longer resolve are dropped; any other failure is raised.
    """
    child_ids = await relation.load(parent_id)
    children = []
    for result in await loader.load_many(child_ids):
        if isinstance(result, NotFoundError):
            continue
        if isinstance(result, BaseException):
            raise result
        children.append(type_.from_entity(result))
    return children


@strawberry.type(name="Continent")
class ContinentType(EntityType):
    id: int
    name: str
    slug: str
    code: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def countries(self, info: Info) -> List["CountryType"]:
        loaders = info.context.loaders
        return await load_children(loaders.countries_by_continent, loaders.countries, self.id, CountryType)


@strawberry.type(name="Country")
class CountryType(EntityType):
    id: int
    continent_id: int
    name: str
    iso_code: str
    iso_code3: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def continent(self, info: Info) -> Optional[ContinentType]:
        return await load_one(info.context.loaders.continents, self.continent_id, ContinentType)

    @strawberry.field
    async def destinations(self, info: Info) -> List["DestinationType"]:
        loaders = info.context.loaders
        return await load_children(loaders.destinations_by_country, loaders.destinations, self.id, DestinationType)


@strawberry.type(name="DestinationStats")
class DestinationStatsType(EntityType):
    destination_id: int
    visit_count: int
    average_rating: Optional[float] = None


@strawberry.type(name="Destination")
class DestinationType(EntityType):
    id: int
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

    @strawberry.field
    async def country(self, info: Info) -> Optional[CountryType]:
        return await load_one(info.context.loaders.countries, self.country_id, CountryType)

    @strawberry.field
    async def type(self, info: Info) -> Optional["DestinationTypeType"]:
        return await load_one(info.context.loaders.destination_types, self.type_id, DestinationTypeType)

    @strawberry.field
    async def categories(self, info: Info) -> List["CategoryType"]:
        loaders = info.context.loaders
        return await load_children(loaders.categories_by_destination, loaders.categories, self.id, CategoryType)

    @strawberry.field
    async def highlights(self, info: Info) -> List["HighlightType"]:
        loaders = info.context.loaders
        return await load_children(loaders.highlights_by_destination, loaders.highlights, self.id, HighlightType)

    @strawberry.field
    async def visits(self, info: Info) -> List["VisitType"]:
        loaders = info.context.loaders
        return await load_children(loaders.visits_by_destination, loaders.visits, self.id, VisitType)

    @strawberry.field
    async def stats(self, info: Info) -> DestinationStatsType:
        stats = await info.context.loaders.destination_stats.load(self.id)
        return DestinationStatsType.from_entity(stats)


@strawberry.type(name="DestinationType")
class DestinationTypeType(EntityType):
    id: int
    name: str
    description: Optional[str] = None
    icon_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def destinations(self, info: Info) -> List[DestinationType]:
        loaders = info.context.loaders
        return await load_children(loaders.destinations_by_type, loaders.destinations, self.id, DestinationType)

    @strawberry.field
    async def destination_count(self, info: Info) -> int:
        return len(await info.context.loaders.destinations_by_type.load(self.id))


@strawberry.type(name="Category")
class CategoryType(EntityType):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def destinations(self, info: Info) -> List[DestinationType]:
        loaders = info.context.loaders
        return await load_children(loaders.destinations_by_category, loaders.destinations, self.id, DestinationType)


@strawberry.type(name="Highlight")
class HighlightType(EntityType):
    id: int
    destination_id: int
    name: str
    slug: str
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def destination(self, info: Info) -> Optional[DestinationType]:
        return await load_one(info.context.loaders.destinations, self.destination_id, DestinationType)


@strawberry.type(name="Language")
class LanguageType(EntityType):
    id: int
    code: str
    name: str
    native_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@strawberry.type(name="User")
class UserType(EntityType):
    id: int
    username: str
    email: str
    picture: Optional[str] = None
    locale: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def visits(self, info: Info) -> List["VisitType"]:
        loaders = info.context.loaders
        return await load_children(loaders.visits_by_user, loaders.visits, self.id, VisitType)

    @strawberry.field
    async def language(self, info: Info) -> Optional[LanguageType]:
        """The language matching this user's locale code."""
        return await load_one(info.context.loaders.languages_by_code, self.locale, LanguageType)


@strawberry.type(name="Visit")
class VisitType(EntityType):
    id: int
    user_id: int
    destination_id: int
    visited_at: datetime
    rating: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @strawberry.field
    async def user(self, info: Info) -> Optional[UserType]:
        return await load_one(info.context.loaders.users, self.user_id, UserType)

    @strawberry.field
    async def destination(self, info: Info) -> Optional[DestinationType]:
        return await load_one(info.context.loaders.destinations, self.destination_id, DestinationType)


@strawberry.type
class DestinationPage:
    items: List[DestinationType]
    total_count: int
    has_more: bool


@strawberry.type
class VisitPage:
    items: List[VisitType]
    total_count: int
    has_more: bool


@strawberry.type
class SearchResult:
    continents: List[ContinentType]
    countries: List[CountryType]
    destinations: List[DestinationType]
    highlights: List[HighlightType]


@strawberry.type(name="PeriodCount")
class PeriodCountType(EntityType):
    period_start: datetime
    visit_count: int


@strawberry.type(name="GlobalStats")
class GlobalStatsType:
    since: Optional[datetime]
    total_users: int
    total_countries: int
    total_destinations: int
    total_visits: int
    average_rating: Optional[float]
    visits_by_period: List[PeriodCountType]
    most_visited_destination_id: strawberry.Private[Optional[int]]
    most_active_user_id: strawberry.Private[Optional[int]]

    @strawberry.field
    async def most_visited_destination(self, info: Info) -> Optional[DestinationType]:
        return await load_one(info.context.loaders.destinations, self.most_visited_destination_id, DestinationType)

    @strawberry.field
    async def most_active_user(self, info: Info) -> Optional[UserType]:
        return await load_one(info.context.loaders.users, self.most_active_user_id, UserType)
