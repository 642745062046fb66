"""Relational schema for the travel data model."""

import logging
from typing import List

import duckdb

logger = logging.getLogger(__name__)

TABLES = [
    "continents",
    "countries",
    "destinations",
    "categories",
    "destination_categories",
    "highlights",
    "users",
    "visits",
    "destination_types",
    "languages",
]

# No FOREIGN KEY clauses: DuckDB rewrites updates of referenced rows as
# delete + insert, which trips the constraint on plain column updates.
SCHEMA_STATEMENTS: List[str] = [
    *(f"CREATE SEQUENCE IF NOT EXISTS seq_{table} START 1"
      for table in TABLES if table != "destination_categories"),
    """
    CREATE TABLE IF NOT EXISTS continents (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_continents'),
        name VARCHAR NOT NULL,
        slug VARCHAR NOT NULL,
        code VARCHAR NOT NULL,
        description VARCHAR,
        image_url VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS countries (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_countries'),
        continent_id INTEGER NOT NULL,
        name VARCHAR NOT NULL,
        iso_code VARCHAR NOT NULL,
        iso_code3 VARCHAR,
        description VARCHAR,
        image_url VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS destinations (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_destinations'),
        country_id INTEGER NOT NULL,
        name VARCHAR NOT NULL,
        slug VARCHAR NOT NULL,
        type_id INTEGER,
        description VARCHAR,
        latitude DOUBLE,
        longitude DOUBLE,
        image_url VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_categories'),
        name VARCHAR NOT NULL,
        description VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS destination_categories (
        destination_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS highlights (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_highlights'),
        destination_id INTEGER NOT NULL,
        name VARCHAR NOT NULL,
        slug VARCHAR NOT NULL,
        description VARCHAR,
        latitude DOUBLE,
        longitude DOUBLE,
        image_url VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_users'),
        username VARCHAR NOT NULL,
        email VARCHAR NOT NULL,
        picture VARCHAR,
        locale VARCHAR,
        hidden BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS visits (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_visits'),
        user_id INTEGER NOT NULL,
        destination_id INTEGER NOT NULL,
        visited_at TIMESTAMP NOT NULL,
        rating INTEGER,
        notes VARCHAR,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS destination_types (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_destination_types'),
        name VARCHAR NOT NULL,
        description VARCHAR,
        icon_name VARCHAR,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS languages (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_languages'),
        code VARCHAR NOT NULL,
        name VARCHAR NOT NULL,
        native_name VARCHAR,
        created_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP),
        updated_at TIMESTAMP NOT NULL DEFAULT CAST(current_timestamp AS TIMESTAMP)
    )
    """,
]


def create_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create sequences and tables if they do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)
    logger.info(f"Travel schema ready ({len(TABLES)} tables)")


def list_tables(conn: duckdb.DuckDBPyConnection) -> List[str]:
    """Names of the tables in the database."""
    return [row[0] for row in conn.execute("SHOW TABLES").fetchall()]
