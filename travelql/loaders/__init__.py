"""Request-scoped batching loaders."""

from .dataloader import BatchLoader
from .registry import LoaderRegistry

__all__ = [
    'BatchLoader',
    'LoaderRegistry',
]
