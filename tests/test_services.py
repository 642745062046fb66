"""Tests for the entity services over the sample travel database."""

from datetime import datetime
from unittest.mock import patch

import pytest

from travelql.exceptions import FilterError, QueryError, ValidationError
from travelql.execution import ConnectionPool, Pagination, QueryExecutor, Transaction
from travelql.services import Services, StatsPeriod
from travelql.services.statistics import period_window

from .test_database import NOW, create_travel_database


@pytest.fixture
def travel_db():
    conn = create_travel_database()
    yield conn
    conn.close()


@pytest.fixture
def executor(travel_db):
    executor = QueryExecutor(ConnectionPool(travel_db), retry_delay=0.01)
    yield executor
    executor.close()


@pytest.fixture
def services(executor):
    return Services.create(executor)


class TestLookups:

    @pytest.mark.asyncio
    async def test_find_by_id_hides_soft_deleted_rows(self, services):
        assert (await services.continents.find_by_id(1)).name == "Europe"
        assert await services.continents.find_by_id(3) is None

    @pytest.mark.asyncio
    async def test_find_by_ids_skips_hidden_and_missing(self, services):
        destinations = await services.destinations.find_by_ids([6, 3, 1, 99])
        assert sorted(d.id for d in destinations) == [1, 3]

    @pytest.mark.asyncio
    async def test_natural_keys(self, services):
        assert (await services.continents.find_by_code("eu")).name == "Europe"
        assert (await services.countries.find_by_iso_code("jp")).name == "Japan"
        assert (await services.countries.find_by_iso_code("ITA")).name == "Italy"
        assert (await services.destinations.find_by_slug("kyoto")).id == 4
        assert (await services.highlights.find_by_slug("louvre")).destination_id == 1
        assert (await services.users.find_by_email("bob@example.com")).username == "bob"
        assert await services.users.find_by_email("ghost@example.com") is None

    @pytest.mark.asyncio
    async def test_entities_are_typed_records(self, services):
        visit = await services.visits.find_by_id(1)
        assert visit.user_id == 1
        assert visit.visited_at == datetime(2024, 1, 10, 9, 0)
        assert visit.rating == 5


class TestDestinationTypesAndLanguages:

    @pytest.mark.asyncio
    async def test_destination_types_by_name(self, services):
        types = await services.destination_types.find_all()
        assert [t.name for t in types] == ["City", "Coast", "Island"]
        assert (await services.destination_types.find_by_name("Coast")).icon_name == "beach"
        assert await services.destination_types.find_by_name("Desert") is None

    @pytest.mark.asyncio
    async def test_destinations_grouped_by_type(self, services):
        grouped = await services.destinations.child_ids_by("type_id", [1, 2, 3])
        assert grouped == {1: [1, 3, 5], 2: [2], 3: []}

    @pytest.mark.asyncio
    async def test_destination_type_filter_and_column(self, services):
        kyoto = await services.destinations.find_by_slug("kyoto")
        assert kyoto.type_id is None

        coast = await services.destinations.find_all({"type_id": 2})
        assert [d.name for d in coast] == ["Nice"]

    @pytest.mark.asyncio
    async def test_languages(self, services):
        assert [l.code for l in await services.languages.find_all()] == ["en", "fr", "it", "ja"]
        assert (await services.languages.find_by_code(" FR ")).name == "French"

        found = await services.languages.find_by_codes(["ja", "xx"])
        assert [l.name for l in found] == ["Japanese"]


class TestListing:

    @pytest.mark.asyncio
    async def test_default_order_is_by_name(self, services):
        destinations = await services.destinations.find_all()
        assert [d.name for d in destinations] == ["Kyoto", "Nice", "Paris", "Rome", "Tokyo"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, services):
        destinations = await services.destinations.find_all({"search": "O"})
        assert [d.name for d in destinations] == ["Kyoto", "Rome", "Tokyo"]

    @pytest.mark.asyncio
    async def test_exact_and_list_filters(self, services):
        by_country = await services.destinations.find_all({"country_id": 1})
        assert [d.name for d in by_country] == ["Nice", "Paris"]

        by_ids = await services.destinations.find_all({"ids": [5, 2, 6]})
        assert [d.id for d in by_ids] == [2, 5]

        assert await services.destinations.find_all({"ids": []}) == []

    @pytest.mark.asyncio
    async def test_continent_filter_through_country(self, services):
        asian = await services.destinations.find_all({"continent_id": 2})
        assert [d.name for d in asian] == ["Kyoto", "Tokyo"]

    @pytest.mark.asyncio
    async def test_range_filters(self, services):
        visits = await services.visits.find_all({"rating_min": 4, "rating_max": 4})
        assert sorted(v.id for v in visits) == [2, 5]

        spring = await services.visits.find_all({"visited_at_min": datetime(2024, 3, 15)})
        assert [v.id for v in spring] == [6, 5, 4]

    @pytest.mark.asyncio
    async def test_order_tokens(self, services):
        by_visits = await services.destinations.find_all(order_by="VISITS_DESC")
        assert [d.id for d in by_visits] == [1, 4, 2, 3, 5]

        by_rating = await services.destinations.find_all(order_by="RATING_DESC")
        assert [d.id for d in by_rating][:3] == [1, 4, 3]

        popular = await services.destinations.find_all(order_by="POPULARITY")
        assert [d.id for d in popular][:2] == [1, 4]

        oldest_visits = await services.visits.find_all(order_by="VISITED_AT_ASC")
        assert [v.id for v in oldest_visits] == [1, 2, 3, 4, 5, 6]

    @pytest.mark.asyncio
    async def test_unsupported_token_falls_back_to_default(self, services):
        visits = await services.visits.find_all(order_by="NAME_ASC")
        assert [v.id for v in visits] == [6, 5, 4, 3, 2, 1]

    @pytest.mark.asyncio
    async def test_unknown_filter_is_rejected(self, services):
        with pytest.raises(FilterError):
            await services.countries.find_all({"population_min": 1000})

    @pytest.mark.asyncio
    async def test_pages_and_count(self, services):
        page = await services.destinations.find_page(pagination=Pagination(limit=2, offset=0))
        assert [d.name for d in page.items] == ["Kyoto", "Nice"]
        assert page.total_count == 5
        assert page.has_more

        last = await services.destinations.find_page(pagination=Pagination(limit=2, offset=4))
        assert [d.name for d in last.items] == ["Tokyo"]
        assert not last.has_more

        assert await services.destinations.count({"country_id": 3}) == 2

    @pytest.mark.asyncio
    async def test_child_ids_by_parent(self, services):
        grouped = await services.destinations.child_ids_by("country_id", [1, 3, 4])
        assert grouped == {1: [2, 1], 3: [4, 5], 4: []}

    @pytest.mark.asyncio
    async def test_category_links_both_ways(self, services):
        categories = await services.categories.category_ids_by_destination([1, 5, 6])
        assert categories == {1: [1, 2], 5: [2], 6: [3]}

        destinations = await services.categories.destination_ids_by_category([3, 4])
        assert destinations == {3: [2], 4: [1]}

    @pytest.mark.asyncio
    async def test_stats_by_ids(self, services):
        stats = await services.destinations.stats_by_ids([1, 2, 5])

        assert stats[1].visit_count == 2
        assert stats[1].average_rating == pytest.approx(4.5)
        assert stats[2].visit_count == 1
        assert stats[2].average_rating is None
        assert stats[5].visit_count == 0


class TestWrites:

    @pytest.mark.asyncio
    async def test_create_destination_with_categories(self, services):
        destination = await services.destinations.create(
            {"country_id": 2, "name": "Venice", "slug": "venice"},
            category_ids=[1, 3, 1]
        )

        assert destination.id == 7
        assert destination.created_at is not None
        links = await services.categories.category_ids_by_destination([destination.id])
        assert links[destination.id] == [3, 1]

    @pytest.mark.asyncio
    async def test_failed_link_rolls_back_destination(self, services):
        original = Transaction.execute
        calls = []

        async def fail_on_link(self, sql, params=None):
            calls.append(sql)
            if sql.startswith("INSERT INTO destination_categories"):
                raise QueryError("link failed")
            return await original(self, sql, params)

        with patch.object(Transaction, "execute", fail_on_link):
            with pytest.raises(QueryError):
                await services.destinations.create(
                    {"country_id": 2, "name": "Venice", "slug": "venice"},
                    category_ids=[1]
                )

        assert any(sql.startswith("INSERT INTO destinations") for sql in calls)
        assert await services.destinations.find_by_slug("venice") is None
        assert await services.destinations.count() == 5

    @pytest.mark.asyncio
    async def test_update_replaces_links(self, services):
        updated = await services.destinations.update(1, {"name": "Paris, France"}, category_ids=[3])

        assert updated.name == "Paris, France"
        assert updated.updated_at >= updated.created_at
        links = await services.categories.category_ids_by_destination([1])
        assert links[1] == [3]

    @pytest.mark.asyncio
    async def test_update_without_categories_keeps_links(self, services):
        await services.destinations.update(1, {"description": "City of light"})
        links = await services.categories.category_ids_by_destination([1])
        assert links[1] == [1, 2]

    @pytest.mark.asyncio
    async def test_update_missing_or_hidden_returns_none(self, services):
        assert await services.destinations.update(6, {"name": "Found"}) is None
        assert await services.destinations.update(99, {"name": "Nowhere"}) is None

    @pytest.mark.asyncio
    async def test_hide(self, services):
        assert await services.destinations.hide(5) is True
        assert await services.destinations.hide(5) is False
        assert await services.destinations.find_by_id(5) is None

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, services):
        with pytest.raises(ValidationError):
            await services.categories.create({"name": "Hiking", "hidden": True})

    @pytest.mark.asyncio
    async def test_visit_rating_bounds(self, services):
        with pytest.raises(ValidationError):
            await services.visits.create({
                "user_id": 1, "destination_id": 1, "visited_at": datetime(2024, 5, 1), "rating": 6
            })

    @pytest.mark.asyncio
    async def test_visit_delete_is_physical(self, services):
        assert await services.visits.delete(6) is True
        assert await services.visits.delete(6) is False
        assert await services.visits.count() == 5

    @pytest.mark.asyncio
    async def test_visits_cannot_be_hidden(self, services):
        with pytest.raises(ValidationError):
            await services.visits.hide(1)


class TestStatistics:

    @pytest.mark.asyncio
    async def test_all_time(self, services):
        stats = await services.statistics.global_stats(StatsPeriod.ALL_TIME, now=NOW)

        assert stats.since is None
        assert stats.total_users == 3
        assert stats.total_countries == 3
        assert stats.total_destinations == 5
        assert stats.total_visits == 6
        assert stats.average_rating == pytest.approx(4.2)
        assert stats.most_visited_destination_id == 1
        assert stats.most_active_user_id == 1
        assert [(p.period_start.year, p.visit_count) for p in stats.visits_by_period] == [(2024, 6)]

    @pytest.mark.asyncio
    async def test_month_window(self, services):
        stats = await services.statistics.global_stats(StatsPeriod.MONTH, now=NOW)

        assert stats.since == datetime(2024, 3, 20, 12, 0)
        assert stats.total_visits == 2
        assert stats.most_visited_destination_id == 2
        assert stats.most_active_user_id == 1
        assert [p.visit_count for p in stats.visits_by_period] == [1, 1]

    @pytest.mark.asyncio
    async def test_year_buckets_by_month(self, services):
        buckets = await services.statistics.visits_by_period(StatsPeriod.YEAR, now=NOW)
        assert [(p.period_start.month, p.visit_count) for p in buckets] == [(1, 1), (2, 1), (3, 2), (4, 2)]

    def test_period_window_uses_calendar_months(self):
        since, bucket = period_window(StatsPeriod.MONTH, datetime(2024, 3, 31))
        assert since == datetime(2024, 2, 29)
        assert bucket == "day"
