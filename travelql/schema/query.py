"""Root query type."""

from typing import List, Optional, Sequence

import strawberry
from strawberry.types import Info

from ..execution import Pagination
from ..loaders import BatchLoader
from .errors import guarded
from .inputs import (
    CategoryFilter, ContinentFilter, CountryFilter, DestinationFilter, HighlightFilter, OrderBy,
    PaginationInput, StatsPeriod, UserFilter, VisitFilter, to_filters, to_order, to_pagination
)
from .types import (
    CategoryType, ContinentType, CountryType, DestinationPage, DestinationType, DestinationTypeType,
    GlobalStatsType, HighlightType, LanguageType, PeriodCountType, SearchResult, UserType, VisitPage,
    VisitType, load_one
)

SEARCH_LIMIT = 10


def _primed(loader: BatchLoader, entities: Sequence) -> Sequence:
    """Seed a loader with entities fetched by a list query."""
    for entity in entities:
        loader.prime(entity.id, entity)
    return entities


@strawberry.type
class Query:
    @strawberry.field
    async def continent(self, info: Info, id: int) -> Optional[ContinentType]:
        return await load_one(info.context.loaders.continents, id, ContinentType)

    @strawberry.field
    async def continent_by_code(self, info: Info, code: str) -> Optional[ContinentType]:
        entity = await guarded(info.context.services.continents.find_by_code(code))
        return ContinentType.from_entity(entity) if entity else None

    @strawberry.field
    async def continents(self, info: Info,
                         filter: Optional[ContinentFilter] = None,
                         pagination: Optional[PaginationInput] = None,
                         order_by: Optional[OrderBy] = None) -> List[ContinentType]:
        entities = await guarded(info.context.services.continents.find_all(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return [ContinentType.from_entity(e) for e in _primed(info.context.loaders.continents, entities)]

    @strawberry.field
    async def country(self, info: Info, id: int) -> Optional[CountryType]:
        return await load_one(info.context.loaders.countries, id, CountryType)

    @strawberry.field
    async def country_by_iso_code(self, info: Info, iso_code: str) -> Optional[CountryType]:
        entity = await guarded(info.context.services.countries.find_by_iso_code(iso_code))
        return CountryType.from_entity(entity) if entity else None

    @strawberry.field
    async def countries(self, info: Info,
                        filter: Optional[CountryFilter] = None,
                        pagination: Optional[PaginationInput] = None,
                        order_by: Optional[OrderBy] = None) -> List[CountryType]:
        entities = await guarded(info.context.services.countries.find_all(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return [CountryType.from_entity(e) for e in _primed(info.context.loaders.countries, entities)]

    @strawberry.field
    async def destination(self, info: Info, id: int) -> Optional[DestinationType]:
        return await load_one(info.context.loaders.destinations, id, DestinationType)

    @strawberry.field
    async def destination_by_slug(self, info: Info, slug: str) -> Optional[DestinationType]:
        entity = await guarded(info.context.services.destinations.find_by_slug(slug))
        return DestinationType.from_entity(entity) if entity else None

    @strawberry.field
    async def destinations(self, info: Info,
                           filter: Optional[DestinationFilter] = None,
                           pagination: Optional[PaginationInput] = None,
                           order_by: Optional[OrderBy] = None) -> DestinationPage:
        page = await guarded(info.context.services.destinations.find_page(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return DestinationPage(
            items=[DestinationType.from_entity(e) for e in _primed(info.context.loaders.destinations, page.items)],
            total_count=page.total_count,
            has_more=page.has_more
        )

    @strawberry.field
    async def destination_type(self, info: Info, id: int) -> Optional[DestinationTypeType]:
        return await load_one(info.context.loaders.destination_types, id, DestinationTypeType)

    @strawberry.field
    async def destination_type_by_name(self, info: Info, name: str) -> Optional[DestinationTypeType]:
        entity = await guarded(info.context.services.destination_types.find_by_name(name))
        return DestinationTypeType.from_entity(entity) if entity else None

    @strawberry.field
    async def destination_types(self, info: Info) -> List[DestinationTypeType]:
        entities = await guarded(info.context.services.destination_types.find_all())
        return [DestinationTypeType.from_entity(e) for e in _primed(info.context.loaders.destination_types, entities)]

    @strawberry.field
    async def category(self, info: Info, id: int) -> Optional[CategoryType]:
        return await load_one(info.context.loaders.categories, id, CategoryType)

    @strawberry.field
    async def categories(self, info: Info,
                         filter: Optional[CategoryFilter] = None,
                         pagination: Optional[PaginationInput] = None,
                         order_by: Optional[OrderBy] = None) -> List[CategoryType]:
        entities = await guarded(info.context.services.categories.find_all(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return [CategoryType.from_entity(e) for e in _primed(info.context.loaders.categories, entities)]

    @strawberry.field
    async def highlight(self, info: Info, id: int) -> Optional[HighlightType]:
        return await load_one(info.context.loaders.highlights, id, HighlightType)

    @strawberry.field
    async def highlight_by_slug(self, info: Info, slug: str) -> Optional[HighlightType]:
        entity = await guarded(info.context.services.highlights.find_by_slug(slug))
        return HighlightType.from_entity(entity) if entity else None

    @strawberry.field
    async def highlights(self, info: Info,
                         filter: Optional[HighlightFilter] = None,
                         pagination: Optional[PaginationInput] = None,
                         order_by: Optional[OrderBy] = None) -> List[HighlightType]:
        entities = await guarded(info.context.services.highlights.find_all(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return [HighlightType.from_entity(e) for e in _primed(info.context.loaders.highlights, entities)]

    @strawberry.field
    async def user(self, info: Info, id: int) -> Optional[UserType]:
        return await load_one(info.context.loaders.users, id, UserType)

    @strawberry.field
    async def user_by_email(self, info: Info, email: str) -> Optional[UserType]:
        entity = await guarded(info.context.services.users.find_by_email(email))
        return UserType.from_entity(entity) if entity else None

    @strawberry.field
    async def users(self, info: Info,
                    filter: Optional[UserFilter] = None,
                    pagination: Optional[PaginationInput] = None,
                    order_by: Optional[OrderBy] = None) -> List[UserType]:
        entities = await guarded(info.context.services.users.find_all(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return [UserType.from_entity(e) for e in _primed(info.context.loaders.users, entities)]

    @strawberry.field
    async def visit(self, info: Info, id: int) -> Optional[VisitType]:
        return await load_one(info.context.loaders.visits, id, VisitType)

    @strawberry.field
    async def visits(self, info: Info,
                     filter: Optional[VisitFilter] = None,
                     pagination: Optional[PaginationInput] = None,
                     order_by: Optional[OrderBy] = None) -> VisitPage:
        page = await guarded(info.context.services.visits.find_page(
            to_filters(filter), to_pagination(pagination), to_order(order_by)))
        return VisitPage(
            items=[VisitType.from_entity(e) for e in _primed(info.context.loaders.visits, page.items)],
            total_count=page.total_count,
            has_more=page.has_more
        )

    @strawberry.field
    async def language(self, info: Info, id: int) -> Optional[LanguageType]:
        return await load_one(info.context.loaders.languages, id, LanguageType)

    @strawberry.field
    async def language_by_code(self, info: Info, code: str) -> Optional[LanguageType]:
        return await load_one(info.context.loaders.languages_by_code, code.strip().lower(), LanguageType)

    @strawberry.field
    async def languages(self, info: Info) -> List[LanguageType]:
        entities = await guarded(info.context.services.languages.find_all())
        return [LanguageType.from_entity(e) for e in _primed(info.context.loaders.languages, entities)]

    @strawberry.field
    async def search(self, info: Info, term: str, limit: int = SEARCH_LIMIT) -> SearchResult:
        """Case-insensitive name match across places."""
        services = info.context.services
        filters = {"search": term.strip()}
        pagination = Pagination(limit=limit)

        continents = await guarded(services.continents.find_all(filters, pagination))
        countries = await guarded(services.countries.find_all(filters, pagination))
        destinations = await guarded(services.destinations.find_all(filters, pagination))
        highlights = await guarded(services.highlights.find_all(filters, pagination))

        return SearchResult(
            continents=[ContinentType.from_entity(e) for e in continents],
            countries=[CountryType.from_entity(e) for e in countries],
            destinations=[DestinationType.from_entity(e) for e in destinations],
            highlights=[HighlightType.from_entity(e) for e in highlights],
        )

    @strawberry.field
    async def global_stats(self, info: Info, period: StatsPeriod = StatsPeriod.ALL_TIME) -> GlobalStatsType:
        stats = await guarded(info.context.services.statistics.global_stats(period))
        return GlobalStatsType(
            since=stats.since,
            total_users=stats.total_users,
            total_countries=stats.total_countries,
            total_destinations=stats.total_destinations,
            total_visits=stats.total_visits,
            average_rating=stats.average_rating,
            visits_by_period=[PeriodCountType.from_entity(p) for p in stats.visits_by_period],
            most_visited_destination_id=stats.most_visited_destination_id,
            most_active_user_id=stats.most_active_user_id,
        )
