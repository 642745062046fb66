"""Tests for the batching loader."""

import asyncio
from dataclasses import dataclass

import pytest

from travelql.exceptions import BatchLoadError, NotFoundError
from travelql.loaders import BatchLoader
from travelql.metrics import MetricsCollector


@dataclass
class Row:
    id: int
    name: str


class RecordingSource:
    """Batch function over a dict that records every call it receives."""

    def __init__(self, rows, reverse=False):
        self.rows = {row.id: row for row in rows}
        self.calls = []
        self.reverse = reverse

    async def __call__(self, keys):
        self.calls.append(list(keys))
        found = [self.rows[k] for k in keys if k in self.rows]
        return list(reversed(found)) if self.reverse else found


@pytest.fixture
def source():
    return RecordingSource([Row(1, "one"), Row(2, "two"), Row(3, "three")])


class TestBatching:
    """Loads issued in one tick share one batch call."""

    @pytest.mark.asyncio
    async def test_one_call_with_deduplicated_keys(self, source):
        loader = BatchLoader(source, name="row")

        first = loader.load(1)
        second = loader.load(2)
        again = loader.load(1)

        results = await asyncio.gather(first, second, again)

        assert source.calls == [[1, 2]]
        assert results[0] is results[2]
        assert results[1].name == "two"

    @pytest.mark.asyncio
    async def test_loads_from_concurrent_resolvers_join_one_batch(self, source):
        loader = BatchLoader(source, name="row")

        async def resolve(key):
            return await loader.load(key)

        results = await asyncio.gather(resolve(3), resolve(1), resolve(2))

        assert [r.id for r in results] == [3, 1, 2]
        assert len(source.calls) == 1
        assert sorted(source.calls[0]) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_separate_ticks_dispatch_separately(self, source):
        loader = BatchLoader(source, name="row")

        await loader.load(1)
        await loader.load(2)

        assert source.calls == [[1], [2]]
        assert loader.dispatch_count == 2

    @pytest.mark.asyncio
    async def test_sync_batch_function(self):
        calls = []

        def fetch(keys):
            calls.append(keys)
            return {k: k * 10 for k in keys}

        loader = BatchLoader(fetch, name="times_ten")
        assert await loader.load_many([2, 1]) == [20, 10]
        assert calls == [[2, 1]]

    @pytest.mark.asyncio
    async def test_max_batch_size_splits_batches(self, source):
        loader = BatchLoader(source, name="row", max_batch_size=2)

        results = await loader.load_many([1, 2, 3])

        assert [r.id for r in results] == [1, 2, 3]
        assert source.calls == [[1, 2], [3]]

    def test_max_batch_size_must_be_positive(self, source):
        with pytest.raises(ValueError):
            BatchLoader(source, max_batch_size=0)


class TestOrderingAndMissingKeys:

    @pytest.mark.asyncio
    async def test_load_many_preserves_input_order(self):
        source = RecordingSource([Row(1, "one"), Row(2, "two"), Row(3, "three")], reverse=True)
        loader = BatchLoader(source, name="row")

        results = await loader.load_many([3, 1, 2])

        assert [r.id for r in results] == [3, 1, 2]

    @pytest.mark.asyncio
    async def test_missing_key_fails_only_its_position(self, source):
        loader = BatchLoader(source, name="row")

        results = await loader.load_many([1, 99, 2])

        assert results[0].id == 1
        assert isinstance(results[1], NotFoundError)
        assert results[1].key == 99
        assert results[1].entity == "row"
        assert results[2].id == 2

    @pytest.mark.asyncio
    async def test_missing_key_raises_on_load(self, source):
        loader = BatchLoader(source, name="row")

        with pytest.raises(NotFoundError):
            await loader.load(42)

    @pytest.mark.asyncio
    async def test_missing_key_is_not_refetched(self, source):
        loader = BatchLoader(source, name="row")

        with pytest.raises(NotFoundError):
            await loader.load(42)
        with pytest.raises(NotFoundError):
            await loader.load(42)

        assert source.calls == [[42]]

    @pytest.mark.asyncio
    async def test_mapping_values_can_be_per_key_errors(self):
        async def fetch(keys):
            return {1: "ok", 2: ValueError("bad row")}

        loader = BatchLoader(fetch, name="mixed")
        ok, bad = await loader.load_many([1, 2])

        assert ok == "ok"
        assert isinstance(bad, ValueError)

    @pytest.mark.asyncio
    async def test_empty_load_many(self, source):
        loader = BatchLoader(source, name="row")
        assert await loader.load_many([]) == []
        assert source.calls == []


class TestCache:

    @pytest.mark.asyncio
    async def test_resolved_key_is_served_from_cache(self, source):
        loader = BatchLoader(source, name="row")

        first = await loader.load(1)
        second = await loader.load(1)

        assert first is second
        assert len(source.calls) == 1

    @pytest.mark.asyncio
    async def test_cache_disabled_refetches(self, source):
        loader = BatchLoader(source, name="row", cache=False)

        await loader.load(1)
        await loader.load(1)

        assert source.calls == [[1], [1]]

    @pytest.mark.asyncio
    async def test_prime_and_clear(self, source):
        loader = BatchLoader(source, name="row")

        loader.prime(7, Row(7, "seven"))
        assert (await loader.load(7)).name == "seven"
        assert source.calls == []

        loader.clear(7)
        with pytest.raises(NotFoundError):
            await loader.load(7)
        assert source.calls == [[7]]

    @pytest.mark.asyncio
    async def test_prime_does_not_override(self, source):
        loader = BatchLoader(source, name="row")

        await loader.load(1)
        loader.prime(1, Row(1, "other"))

        assert (await loader.load(1)).name == "one"

    @pytest.mark.asyncio
    async def test_clear_all(self, source):
        loader = BatchLoader(source, name="row")

        await loader.load_many([1, 2])
        loader.clear_all()
        await loader.load_many([1, 2])

        assert source.calls == [[1, 2], [1, 2]]


class TestBatchFailure:

    @pytest.mark.asyncio
    async def test_failure_rejects_every_caller_with_shared_error(self):
        async def fetch(keys):
            raise RuntimeError("database down")

        loader = BatchLoader(fetch, name="row")
        results = await loader.load_many([1, 2])

        assert all(isinstance(r, BatchLoadError) for r in results)
        assert results[0] is results[1]
        assert isinstance(results[0].__cause__, RuntimeError)
        assert results[0].context["loader"] == "row"

    @pytest.mark.asyncio
    async def test_failure_does_not_poison_cache(self):
        attempts = []

        async def flaky(keys):
            attempts.append(list(keys))
            if len(attempts) == 1:
                raise RuntimeError("transient")
            return [Row(k, str(k)) for k in keys]

        loader = BatchLoader(flaky, name="row")

        with pytest.raises(BatchLoadError):
            await loader.load(1)

        row = await loader.load(1)
        assert row.id == 1
        assert attempts == [[1], [1]]


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_siblings(self):
        calls = []

        async def slow(keys):
            calls.append(list(keys))
            await asyncio.sleep(0.01)
            return [Row(k, str(k)) for k in keys]

        loader = BatchLoader(slow, name="row")
        first = asyncio.ensure_future(loader.load(1))
        second = asyncio.ensure_future(loader.load(1))
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        assert (await second).name == "1"
        assert (await loader.load(1)).name == "1"
        assert calls == [[1]]

    @pytest.mark.asyncio
    async def test_cancelled_load_many_leaves_cache_usable(self, source):
        loader = BatchLoader(source, name="row")

        gathered = asyncio.ensure_future(loader.load_many([1, 2]))
        await asyncio.sleep(0)
        gathered.cancel()
        with pytest.raises(asyncio.CancelledError):
            await gathered

        assert [r.name for r in await loader.load_many([1, 2])] == ["one", "two"]
        assert source.calls == [[1, 2]]

    @pytest.mark.asyncio
    async def test_cancelled_dispatch_evicts_its_keys(self, source):
        started = asyncio.Event()

        async def hanging(keys):
            started.set()
            await asyncio.sleep(10)

        loader = BatchLoader(hanging, name="row")
        pending = loader.load(1)
        await started.wait()

        for task in list(loader._tasks):
            task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        loader.batch_fn = source
        assert (await loader.load(1)).name == "one"
        assert source.calls == [[1]]


class TestLoaderMetrics:

    @pytest.mark.asyncio
    async def test_batches_and_cache_hits_are_recorded(self, source):
        metrics = MetricsCollector()
        loader = BatchLoader(source, name="row", metrics=metrics)

        await loader.load_many([1, 2])
        await loader.load(1)

        stats = metrics.get_stats()["loaders"]["row"]
        assert stats["batches"] == 1
        assert stats["keys"] == 2
        assert stats["cache_hits"] == 1
