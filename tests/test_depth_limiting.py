"""Tests for query depth limiting."""

import pytest

from travelql import TravelQL
from travelql.validation import DepthLimitExtension, create_depth_limit_extension

from .test_database import create_travel_database


class TestTravelQLDepthLimiting:
    """Test depth limiting integration with TravelQL."""

    @pytest.fixture
    def travel_db(self):
        conn = create_travel_database()
        yield conn
        conn.close()

    async def run(self, server: TravelQL, query: str):
        return await server.get_schema().execute(query, context_value=server.create_context())

    @pytest.mark.asyncio
    async def test_query_within_depth_limit(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=3)

        result = await self.run(server, """
        query {
            continents {
                name
                code
            }
        }
        """)

        assert not result.errors
        assert len(result.data['continents']) == 2
        server.close()

    @pytest.mark.asyncio
    async def test_query_at_exact_limit(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=3)

        result = await self.run(server, """
        query {
            continents {
                countries {
                    name
                }
            }
        }
        """)

        assert not result.errors
        server.close()

    @pytest.mark.asyncio
    async def test_query_exceeds_depth_limit(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            continents {
                name
                countries {
                    name
                }
            }
        }
        """)

        assert result.errors
        assert len(result.errors) == 1
        assert "exceeds maximum allowed depth" in result.errors[0].message
        assert result.data is None
        server.close()

    @pytest.mark.asyncio
    async def test_rejected_query_runs_no_sql(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        await self.run(server, "query { countries { continent { countries { name } } } }")

        assert server.get_stats()['query_count'] == 0
        server.close()

    @pytest.mark.asyncio
    async def test_no_depth_limit_by_default(self, travel_db):
        server = TravelQL(travel_db)

        result = await self.run(server, """
        query {
            continents {
                countries {
                    destinations {
                        highlights {
                            destination {
                                country {
                                    name
                                }
                            }
                        }
                    }
                }
            }
        }
        """)

        assert not result.errors
        continent = next(c for c in result.data['continents'] if c['countries'])
        assert continent['countries'][0]['destinations']
        server.close()

    @pytest.mark.asyncio
    async def test_depth_limit_with_aliases(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            allContinents: continents {
                label: name
                countries {
                    countryName: name
                }
            }
        }
        """)

        assert result.errors
        assert any("exceeds maximum allowed depth" in str(e) for e in result.errors)
        server.close()

    @pytest.mark.asyncio
    async def test_fragments_count_toward_depth(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            continents {
                ...ContinentFields
            }
        }

        fragment ContinentFields on Continent {
            name
            countries {
                name
            }
        }
        """)

        assert result.errors
        assert "Query depth (3)" in result.errors[0].message
        server.close()

    @pytest.mark.asyncio
    async def test_inline_fragments_count_toward_depth(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            continents {
                ... on Continent {
                    countries {
                        name
                    }
                }
            }
        }
        """)

        assert result.errors
        assert "exceeds maximum allowed depth" in result.errors[0].message
        server.close()

    @pytest.mark.asyncio
    async def test_introspection_is_not_limited(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            __schema {
                types {
                    fields {
                        type {
                            name
                        }
                    }
                }
            }
        }
        """)

        assert not result.errors
        server.close()

    @pytest.mark.asyncio
    async def test_error_message_includes_depths(self, travel_db):
        server = TravelQL(travel_db, max_query_depth=2)

        result = await self.run(server, """
        query {
            continents {
                countries {
                    destinations {
                        name
                    }
                }
            }
        }
        """)

        assert result.errors
        assert result.errors[0].message == "Query depth (4) exceeds maximum allowed depth (2)"
        server.close()

    def test_create_depth_limit_extension(self):
        extension = create_depth_limit_extension(5)

        assert isinstance(extension, DepthLimitExtension)
        assert extension.max_depth == 5
        assert extension.ignore_introspection is True

    def test_unlimited_depth_has_no_extension(self):
        assert create_depth_limit_extension(None) is None
