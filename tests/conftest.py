"""
PyTest configuration and shared fixtures for sqlseam tests
"""

import os

import pytest

from sqlseam.db import Attribute, ErrorMode, SQLiteConnection
from sqlseam.db import database

SCHEMA = [
    "CREATE TABLE accounts (id INTEGER PRIMARY KEY, owner TEXT NOT NULL, balance INTEGER NOT NULL)",
    "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, email TEXT)",
    "CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, x INTEGER)",
]

SEED = [
    "INSERT INTO accounts (id, owner, balance) VALUES (1, 'alice', 500)",
    "INSERT INTO accounts (id, owner, balance) VALUES (2, 'bob', 100)",
    "INSERT INTO users (name, email) VALUES ('alice', 'alice@example.com')",
    "INSERT INTO users (name, email) VALUES ('bob', NULL)",
]


def _initialize(connection):
    for sql in SCHEMA + SEED:
        assert connection.exec(sql) is not None, connection.error_info()


@pytest.fixture(scope="function", autouse=True)
def clear_connection_cache():
    """Drop the shared connection between tests"""
    database.reset_connection()
    yield
    database.reset_connection()


@pytest.fixture(scope="function")
def memory_db():
    """In-memory SQLite connection with schema and seed rows"""
    connection = SQLiteConnection(":memory:")
    _initialize(connection)
    yield connection
    connection.close()


@pytest.fixture(scope="function")
def strict_db(memory_db):
    """Same database in exception error mode"""
    memory_db.set_attribute(Attribute.ERRMODE, ErrorMode.EXCEPTION)
    return memory_db


@pytest.fixture(scope="function")
def file_db_path(tmp_path):
    """Path to a file-based SQLite database with schema and seed rows"""
    path = str(tmp_path / "sqlseam_test.db")
    connection = SQLiteConnection(path)
    _initialize(connection)
    connection.close()
    return path


@pytest.fixture(scope="session")
def postgres_dsn():
    """DSN of a live PostgreSQL server for integration tests"""
    dsn = os.environ.get("SQLSEAM_TEST_PG_DSN")
    if not dsn:
        pytest.skip("Set SQLSEAM_TEST_PG_DSN=pgsql:host=...;dbname=...;user=... to run PostgreSQL tests")
    return dsn
