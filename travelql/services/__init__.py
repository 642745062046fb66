"""Entity services: all SQL issued on behalf of resolvers and loaders."""

from dataclasses import dataclass

from ..execution import QueryExecutor
from .base import BaseService, Page, NAMED_ORDER_CLAUSES
from .continent import ContinentService
from .country import CountryService
from .destination import DestinationService
from .destination_type import DestinationTypeService
from .category import CategoryService
from .highlight import HighlightService
from .user import UserService
from .visit import VisitService
from .language import LanguageService
from .statistics import StatisticsService, StatsPeriod, GlobalStats, PeriodCount


@dataclass
class Services:
    """One service per entity kind, sharing an executor."""
    continents: ContinentService
    countries: CountryService
    destinations: DestinationService
    destination_types: DestinationTypeService
    categories: CategoryService
    highlights: HighlightService
    users: UserService
    visits: VisitService
    languages: LanguageService
    statistics: StatisticsService

    @classmethod
    def create(cls, executor: QueryExecutor) -> "Services":
        return cls(
            continents=ContinentService(executor),
            countries=CountryService(executor),
            destinations=DestinationService(executor),
            destination_types=DestinationTypeService(executor),
            categories=CategoryService(executor),
            highlights=HighlightService(executor),
            users=UserService(executor),
            visits=VisitService(executor),
            languages=LanguageService(executor),
            statistics=StatisticsService(executor),
        )


__all__ = [
    'Services',
    'BaseService',
    'Page',
    'NAMED_ORDER_CLAUSES',
    'ContinentService',
    'CountryService',
    'DestinationService',
    'DestinationTypeService',
    'CategoryService',
    'HighlightService',
    'UserService',
    'VisitService',
    'LanguageService',
    'StatisticsService',
    'StatsPeriod',
    'GlobalStats',
    'PeriodCount',
]
