"""GraphQL schema for the travel API."""

from typing import Optional

import strawberry
from strawberry.schema.config import StrawberryConfig

from ..metrics import MetricsCollector, create_metrics_extension
from ..validation import create_depth_limit_extension
from .context import TravelQLContext
from .mutation import Mutation
from .query import Query


def create_schema(max_query_depth: Optional[int] = None,
                  metrics_collector: Optional[MetricsCollector] = None) -> strawberry.Schema:
    """Build the schema with optional depth limiting and metrics extensions."""
    extensions = []
    depth_limit = create_depth_limit_extension(max_query_depth)
    if depth_limit is not None:
        extensions.append(depth_limit)
    if metrics_collector is not None:
        extensions.append(create_metrics_extension(metrics_collector))

    return strawberry.Schema(
        query=Query,
        mutation=Mutation,
        extensions=extensions,
        config=StrawberryConfig(auto_camel_case=False)
    )


__all__ = ['create_schema', 'Query', 'Mutation', 'TravelQLContext']
