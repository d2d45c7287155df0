import entitydb as db
import pytest
from entitydb.utils import get_raw_connection

SQLITE_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    mail TEXT,
    age INTEGER,
    score REAL,
    active BOOLEAN,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    tags TEXT,
    profile TEXT,
    balance TEXT
);

CREATE TABLE purchase (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    amount TEXT,
    placed_on DATE
);

CREATE TABLE tag (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    label TEXT NOT NULL DEFAULT 'none'
);

CREATE TABLE audit_log (
    message TEXT
);

INSERT INTO users (name, mail, age, score, active, created_at, tags, profile, balance) VALUES
('Alice', 'alice@example.com', 30, 9.5, 1, '2024-01-02 03:04:05', '["admin"]', '{"team": "red"}', '100.50'),
('Bob', 'bob@example.com', 25, 7.25, 0, '2024-02-03 04:05:06', '[]', '{}', '0'),
('Charlie', 'charlie@example.com', 35, 8.0, 1, '2024-03-04 05:06:07', '["ops", "dev"]', '{}', '12.75');

INSERT INTO purchase (user_id, amount, placed_on) VALUES
(1, '19.99', '2024-05-01'),
(1, '5.00', '2024-05-02'),
(3, '42.00', '2024-06-01');
"""


def stage_sqlite_data(cn):
    get_raw_connection(cn).executescript(SQLITE_SCHEMA)


@pytest.fixture
def sqlite_conn():
    """Create an in-memory SQLite database for testing"""
    conn = db.connect({
        'drivername': 'sqlite',
        'database': ':memory:'
    })
    stage_sqlite_data(conn)

    yield conn
    conn.close()


@pytest.fixture
def sqlite_raw_conn():
    """Plain sqlite3 connection in the driver's default transaction mode."""
    import sqlite3

    conn = sqlite3.connect(':memory:')
    stage_sqlite_data(conn)

    yield conn
    conn.close()


@pytest.fixture
def sqlite_file_conn(tmp_path):
    """File-based SQLite connection for checking persistence across connections."""
    db_file = str(tmp_path / 'entitydb_test.db')

    conn = db.connect({
        'drivername': 'sqlite',
        'database': db_file
    })
    stage_sqlite_data(conn)

    yield conn, db_file
    conn.close()
