"""Request-scoped batching and caching loader."""

import asyncio
import inspect
import logging
from operator import attrgetter
from typing import (
    Any, Awaitable, Callable, Dict, Generic, Hashable, Iterable, List, Mapping,
    Optional, Set, TypeVar, Union
)

from ..exceptions import BatchLoadError, NotFoundError
from ..metrics import MetricsCollector

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BatchResult = Union[Mapping[K, Union[V, BaseException]], Iterable[Optional[V]]]
BatchFn = Callable[[List[K]], Union[Awaitable[BatchResult], BatchResult]]


class _Batch(Generic[K, V]):
    """Keys collected between two dispatch points, each with one shared future."""

    __slots__ = ("futures", "dispatched")

    def __init__(self):
        self.futures: Dict[K, "asyncio.Future[V]"] = {}
        self.dispatched = False

    def __len__(self) -> int:
        return len(self.futures)


class BatchLoader(Generic[K, V]):
    """Coalesces ``load(key)`` calls made in one scheduler tick into one batch call.

    The batch function receives the deduplicated keys in first-requested order
    and returns either a mapping ``key -> value`` or an iterable of entities
    whose keys are read with ``key_fn``. Keys absent from the result resolve
    with :class:`NotFoundError`; exception values resolve only their own key.
    If the batch function raises, every caller of that batch receives the same
    :class:`BatchLoadError` and the keys are evicted from the cache.

    A loader belongs to one request. Do not share it between requests.
    """

    def __init__(self,
                 batch_fn: BatchFn,
                 *,
                 name: Optional[str] = None,
                 key_fn: Callable[[V], K] = attrgetter("id"),
                 max_batch_size: Optional[int] = None,
                 cache: bool = True,
                 metrics: Optional[MetricsCollector] = None):
        """
        Args:
            batch_fn: Callable taking a list of keys (sync or async)
            name: Name used in logs, errors and metrics
            key_fn: Extracts the key from an entity returned as a sequence
            max_batch_size: Split batches larger than this
            cache: Keep resolved keys for the loader's lifetime
            metrics: Optional collector for batch and cache-hit counts
        """
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        self.batch_fn = batch_fn
        self.name = name or getattr(batch_fn, "__qualname__", "loader")
        self.key_fn = key_fn
        self.max_batch_size = max_batch_size
        self.cache = cache
        self.metrics = metrics

        self._cache: Dict[K, "asyncio.Future[V]"] = {}
        self._batch: Optional[_Batch[K, V]] = None
        self._tasks: Set["asyncio.Task[None]"] = set()
        self.dispatch_count = 0

    def load(self, key: K) -> "asyncio.Future[V]":
        """Future for the value of ``key``; joins the pending batch unless cached.

        Each caller gets its own view of the shared batch future, so
        cancelling one caller leaves the others and the cache intact.
        """
        if self.cache:
            cached = self._cache.get(key)
            if cached is not None and cached.cancelled():
                del self._cache[key]
            elif cached is not None:
                if self.metrics:
                    self.metrics.record_cache_hit(self.name)
                return asyncio.shield(cached)

        loop = asyncio.get_running_loop()
        batch = self._batch
        if batch is not None and not batch.dispatched:
            pending = batch.futures.get(key)
            if pending is not None:
                return asyncio.shield(pending)

        batch = self._current_batch(loop)
        future = loop.create_future()
        batch.futures[key] = future
        if self.cache:
            self._cache[key] = future
        return asyncio.shield(future)

    async def load_many(self, keys: Iterable[K]) -> List[Union[V, BaseException]]:
        """Values for ``keys`` in input order; failed keys hold their exception."""
        futures = [self.load(key) for key in keys]
        if not futures:
            return []
        return list(await asyncio.gather(*futures, return_exceptions=True))

    def prime(self, key: K, value: V) -> None:
        """Seed the cache with a known value; existing entries win."""
        if not self.cache or key in self._cache:
            return
        future = asyncio.get_running_loop().create_future()
        future.set_result(value)
        self._cache[key] = future

    def clear(self, key: K) -> None:
        """Drop one key from the cache."""
        self._cache.pop(key, None)

    def clear_all(self) -> None:
        """Drop every cached key."""
        self._cache.clear()

    def _current_batch(self, loop: asyncio.AbstractEventLoop) -> _Batch[K, V]:
        batch = self._batch
        full = batch is not None and self.max_batch_size is not None and len(batch) >= self.max_batch_size
        if batch is None or batch.dispatched or full:
            batch = _Batch()
            self._batch = batch
            loop.call_soon(self._schedule_dispatch, loop, batch)
        return batch

    def _schedule_dispatch(self, loop: asyncio.AbstractEventLoop, batch: _Batch[K, V]) -> None:
        task = loop.create_task(self._dispatch(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, batch: _Batch[K, V]) -> None:
        batch.dispatched = True
        keys = list(batch.futures)
        self.dispatch_count += 1
        logger.debug(f"Loader {self.name} dispatching batch of {len(keys)} key(s)")

        try:
            result = self.batch_fn(keys)
            if inspect.isawaitable(result):
                result = await result
            values = self._index(result)
        except asyncio.CancelledError:
            self._evict(batch)
            for future in batch.futures.values():
                future.cancel()
            raise
        except Exception as e:
            if self.metrics:
                self.metrics.record_batch(self.name, len(keys), failed=True)
            logger.warning(f"Loader {self.name} batch of {len(keys)} key(s) failed: {e}")
            self._fail(batch, e, keys)
            return

        if self.metrics:
            self.metrics.record_batch(self.name, len(keys))

        for key, future in batch.futures.items():
            if future.done():
                continue
            if key not in values:
                future.set_exception(NotFoundError(
                    f"No {self.name} found for key {key!r}",
                    entity=self.name,
                    key=key
                ))
                continue
            value = values[key]
            if isinstance(value, BaseException):
                future.set_exception(value)
            else:
                future.set_result(value)

    def _index(self, result: BatchResult) -> Dict[K, Any]:
        if isinstance(result, Mapping):
            return dict(result)
        return {self.key_fn(item): item for item in result if item is not None}

    def _evict(self, batch: _Batch[K, V]) -> None:
        for key, future in batch.futures.items():
            if self._cache.get(key) is future:
                del self._cache[key]

    def _fail(self, batch: _Batch[K, V], cause: Exception, keys: List[K]) -> None:
        error = BatchLoadError(
            f"Batch load failed for loader '{self.name}': {cause}",
            loader=self.name,
            keys=keys
        )
        error.__cause__ = cause

        self._evict(batch)
        for future in batch.futures.values():
            if not future.done():
                future.set_exception(error)
