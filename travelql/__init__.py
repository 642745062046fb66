"""TravelQL - batched GraphQL API over a DuckDB travel database."""

from .core import TravelQL
from .config import Settings, get_settings
from .loaders import BatchLoader, LoaderRegistry
from .execution import FilteredQueryBuilder, Pagination, build_query

__version__ = "0.1.0"
__all__ = [
    "TravelQL",
    "Settings",
    "get_settings",
    "BatchLoader",
    "LoaderRegistry",
    "FilteredQueryBuilder",
    "Pagination",
    "build_query",
]
