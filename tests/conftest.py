# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a recording sleep, a temporary PHP project tree, a temporary
SQLite database and an in-memory state tracker. Fakes and sample sources
live in ``fakes.py``. No network access: the backend is always faked.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from codeauditor.tracking.history_store import MemoryHistoryStore
from codeauditor.tracking.progress_cache import MemoryProgressCache
from codeauditor.tracking.state_tracker import StateTracker
from fakes import ORDER_MODEL, USER_CONTROLLER, RecordingSleep


# === FIXTURES: Collaborators ===


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def tracker() -> StateTracker:
    """State tracker over in-memory progress cache and history."""
    return StateTracker(MemoryProgressCache(), MemoryHistoryStore())


# === FIXTURES: Sample project ===


@pytest.fixture
def php_project(tmp_path: Path) -> Path:
    """Project tree with an ``app`` root, excluded dirs and a test file.

    Scannable files (in lexical order): ``Http/Controllers/UserController.php``,
    ``Models/Order.php``.
    """
    app = tmp_path / "app"
    (app / "Http" / "Controllers").mkdir(parents=True)
    (app / "Models").mkdir(parents=True)
    (app / "vendor" / "lib").mkdir(parents=True)
    (app / "tests").mkdir()

    (app / "Http" / "Controllers" / "UserController.php").write_text(USER_CONTROLLER)
    (app / "Models" / "Order.php").write_text(ORDER_MODEL)
    (app / "Models" / "README.md").write_text("# not php\n")
    (app / "Models" / "OrderTest.php").write_text("<?php // test\n")
    (app / "vendor" / "lib" / "Vendor.php").write_text("<?php // vendor\n")
    (app / "tests" / "Helper.php").write_text("<?php // helper\n")
    return tmp_path


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Path:
    """SQLite database with users, orders (indexed FK) and an empty audit table."""
    path = tmp_path / "database.sqlite"
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            email TEXT NOT NULL,
            password TEXT,
            api_token TEXT
        );
        CREATE UNIQUE INDEX users_email_unique ON users (email);
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY,
            user_id INTEGER REFERENCES users(id),
            status TEXT,
            meta JSON
        );
        CREATE INDEX orders_user_id_index ON orders (user_id);
        CREATE TABLE audit_log (id INTEGER PRIMARY KEY, note TEXT);
        INSERT INTO users (id, email, password, api_token) VALUES
            (1, 'a@example.com', 'hash-1', 'tok-1'),
            (2, 'b@example.com', 'hash-2', 'tok-2');
        INSERT INTO orders (id, user_id, status, meta) VALUES
            (1, 1, 'paid', '{}'),
            (2, 99, 'pending', '{}');
        """
    )
    conn.commit()
    conn.close()
    return path
