"""Travel test database with hidden rows and visits spread over time."""

from datetime import datetime

import duckdb

from travelql.database import create_schema

CONTINENTS = [
    # name, slug, code, hidden
    ("Europe", "europe", "EU", False),
    ("Asia", "asia", "AS", False),
    ("Antarctica", "antarctica", "AN", True),
]

COUNTRIES = [
    # continent_id, name, iso_code, iso_code3, hidden
    (1, "France", "FR", "FRA", False),
    (1, "Italy", "IT", "ITA", False),
    (2, "Japan", "JP", "JPN", False),
    (1, "Atlantis", "AT", "ATL", True),
]

DESTINATION_TYPES = [
    # name, description, icon_name
    ("City", "Large urban destinations", "city"),
    ("Coast", "Seaside towns and beaches", "beach"),
    ("Island", None, "island"),
]

DESTINATIONS = [
    # country_id, type_id, name, slug, latitude, longitude, hidden
    (1, 1, "Paris", "paris", 48.8566, 2.3522, False),
    (1, 2, "Nice", "nice", 43.7102, 7.2620, False),
    (2, 1, "Rome", "rome", 41.9028, 12.4964, False),
    (3, None, "Kyoto", "kyoto", 35.0116, 135.7681, False),
    (3, 1, "Tokyo", "tokyo", 35.6762, 139.6503, False),
    (1, 2, "Secret Beach", "secret-beach", 43.0, 6.0, True),
]

CATEGORIES = [
    # name, hidden
    ("Culture", False),
    ("Food", False),
    ("Beach", False),
    ("Retired", True),
]

DESTINATION_CATEGORIES = [
    (1, 1), (1, 2), (1, 4),
    (2, 3),
    (3, 1), (3, 2),
    (4, 1),
    (5, 2),
    (6, 3),
]

HIGHLIGHTS = [
    # destination_id, name, slug, hidden
    (1, "Eiffel Tower", "eiffel-tower", False),
    (1, "Louvre", "louvre", False),
    (3, "Colosseum", "colosseum", False),
    (4, "Fushimi Inari", "fushimi-inari", False),
    (1, "Closed Museum", "closed-museum", True),
]

USERS = [
    # username, email, locale, hidden
    ("alice", "alice@example.com", "en", False),
    ("bob", "bob@example.com", "fr", False),
    ("carol", "carol@example.com", "ja", False),
    ("ghost", "ghost@example.com", "en", True),
]

LANGUAGES = [
    # code, name, native_name
    ("en", "English", "English"),
    ("fr", "French", "Francais"),
    ("ja", "Japanese", None),
    ("it", "Italian", "Italiano"),
]

VISITS = [
    # user_id, destination_id, visited_at, rating, notes
    (1, 1, datetime(2024, 1, 10, 9, 0), 5, "Loved the museums"),
    (2, 1, datetime(2024, 2, 11, 15, 30), 4, None),
    (1, 3, datetime(2024, 3, 12, 12, 0), 3, "Too hot"),
    (3, 4, datetime(2024, 3, 20, 8, 45), 5, "Temples at dawn"),
    (1, 4, datetime(2024, 4, 1, 10, 0), 4, None),
    (2, 2, datetime(2024, 4, 15, 18, 0), None, "Quick stop"),
]

# Reference point for period statistics: only the April visits fall inside one month.
NOW = datetime(2024, 4, 20, 12, 0)


def populate(conn: duckdb.DuckDBPyConnection) -> None:
    """Insert the sample rows; ids follow list order starting at 1."""
    conn.executemany("INSERT INTO continents (name, slug, code, hidden) VALUES (?, ?, ?, ?)", CONTINENTS)
    conn.executemany(
        "INSERT INTO countries (continent_id, name, iso_code, iso_code3, hidden) VALUES (?, ?, ?, ?, ?)",
        COUNTRIES
    )
    conn.executemany(
        "INSERT INTO destination_types (name, description, icon_name) VALUES (?, ?, ?)",
        DESTINATION_TYPES
    )
    conn.executemany(
        "INSERT INTO destinations (country_id, type_id, name, slug, latitude, longitude, hidden) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        DESTINATIONS
    )
    conn.executemany("INSERT INTO categories (name, hidden) VALUES (?, ?)", CATEGORIES)
    conn.executemany(
        "INSERT INTO destination_categories (destination_id, category_id) VALUES (?, ?)",
        DESTINATION_CATEGORIES
    )
    conn.executemany(
        "INSERT INTO highlights (destination_id, name, slug, hidden) VALUES (?, ?, ?, ?)",
        HIGHLIGHTS
    )
    conn.executemany("INSERT INTO languages (code, name, native_name) VALUES (?, ?, ?)", LANGUAGES)
    conn.executemany("INSERT INTO users (username, email, locale, hidden) VALUES (?, ?, ?, ?)", USERS)
    conn.executemany(
        "INSERT INTO visits (user_id, destination_id, visited_at, rating, notes) VALUES (?, ?, ?, ?, ?)",
        VISITS
    )


def create_travel_database() -> duckdb.DuckDBPyConnection:
    """In-memory travel database with the sample rows loaded."""
    conn = duckdb.connect(":memory:")
    create_schema(conn)
    populate(conn)
    return conn


def create_empty_database() -> duckdb.DuckDBPyConnection:
    """In-memory database with the travel tables and no rows."""
    conn = duckdb.connect(":memory:")
    create_schema(conn)
    return conn
