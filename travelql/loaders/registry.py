"""Per-request set of loaders over the entity services."""

from dataclasses import dataclass
from functools import partial
from operator import attrgetter
from typing import List, Optional

from ..metrics import MetricsCollector
from ..models import (
    Category, Continent, Country, Destination, DestinationStats, DestinationType, Highlight, Language,
    User, Visit
)
from ..services import Services
from .dataloader import BatchLoader


@dataclass
class LoaderRegistry:
    """Entity loaders keyed by id and relationship loaders keyed by parent id.

    Relationship loaders resolve to ordered lists of child ids; pair them with
    the matching entity loader's ``load_many``.
    """

    continents: BatchLoader[int, Continent]
    countries: BatchLoader[int, Country]
    destinations: BatchLoader[int, Destination]
    destination_types: BatchLoader[int, DestinationType]
    categories: BatchLoader[int, Category]
    highlights: BatchLoader[int, Highlight]
    users: BatchLoader[int, User]
    visits: BatchLoader[int, Visit]
    languages: BatchLoader[int, Language]
    languages_by_code: BatchLoader[str, Language]

    countries_by_continent: BatchLoader[int, List[int]]
    destinations_by_country: BatchLoader[int, List[int]]
    destinations_by_type: BatchLoader[int, List[int]]
    destinations_by_category: BatchLoader[int, List[int]]
    categories_by_destination: BatchLoader[int, List[int]]
    highlights_by_destination: BatchLoader[int, List[int]]
    visits_by_user: BatchLoader[int, List[int]]
    visits_by_destination: BatchLoader[int, List[int]]

    destination_stats: BatchLoader[int, DestinationStats]

    @classmethod
    def create(cls, services: Services, metrics: Optional[MetricsCollector] = None,
               max_batch_size: Optional[int] = None) -> "LoaderRegistry":
        """Fresh loaders with empty caches. Call once per request."""
        loader = partial(BatchLoader, metrics=metrics, max_batch_size=max_batch_size)

        return cls(
            continents=loader(services.continents.find_by_ids, name="continent"),
            countries=loader(services.countries.find_by_ids, name="country"),
            destinations=loader(services.destinations.find_by_ids, name="destination"),
            destination_types=loader(services.destination_types.find_by_ids, name="destination_type"),
            categories=loader(services.categories.find_by_ids, name="category"),
            highlights=loader(services.highlights.find_by_ids, name="highlight"),
            users=loader(services.users.find_by_ids, name="user"),
            visits=loader(services.visits.find_by_ids, name="visit"),
            languages=loader(services.languages.find_by_ids, name="language"),
            languages_by_code=loader(
                services.languages.find_by_codes, name="language_by_code", key_fn=attrgetter("code")),

            countries_by_continent=loader(
                partial(services.countries.child_ids_by, "continent_id"), name="countries_by_continent"),
            destinations_by_country=loader(
                partial(services.destinations.child_ids_by, "country_id"), name="destinations_by_country"),
            destinations_by_type=loader(
                partial(services.destinations.child_ids_by, "type_id"), name="destinations_by_type"),
            destinations_by_category=loader(
                services.categories.destination_ids_by_category, name="destinations_by_category"),
            categories_by_destination=loader(
                services.categories.category_ids_by_destination, name="categories_by_destination"),
            highlights_by_destination=loader(
                partial(services.highlights.child_ids_by, "destination_id"), name="highlights_by_destination"),
            visits_by_user=loader(
                partial(services.visits.child_ids_by, "user_id"), name="visits_by_user"),
            visits_by_destination=loader(
                partial(services.visits.child_ids_by, "destination_id"), name="visits_by_destination"),

            destination_stats=loader(services.destinations.stats_by_ids, name="destination_stats"),
        )
