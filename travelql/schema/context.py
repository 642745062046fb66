"""Per-request GraphQL context."""

import uuid
from typing import Optional

from strawberry.fastapi import BaseContext

from ..loaders import LoaderRegistry
from ..metrics import MetricsCollector
from ..services import Services


class TravelQLContext(BaseContext):
    """Services shared across requests plus loaders owned by this request."""

    def __init__(self,
                 services: Services,
                 loaders: LoaderRegistry,
                 metrics: Optional[MetricsCollector] = None,
                 correlation_id: Optional[str] = None):
        super().__init__()
        self.services = services
        self.loaders = loaders
        self.metrics = metrics
        self.correlation_id = correlation_id or str(uuid.uuid4())

    @classmethod
    def create(cls, services: Services, metrics: Optional[MetricsCollector] = None,
               max_batch_size: Optional[int] = None) -> "TravelQLContext":
        return cls(services, LoaderRegistry.create(services, metrics, max_batch_size), metrics)
