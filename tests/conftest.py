"""Pytest configuration and fixtures for Field Notes tests."""
import os
import sqlite3
import tempfile
from contextlib import closing
from datetime import datetime, timedelta

import pytest

from field_notes.config_manager import ConfigManager
from field_notes.enums import StorageStrategy
from field_notes.local_db import LocalDatabase
from field_notes.services.catalog_service import CatalogService


class FakeClock:
    """Deterministic clock for the catalog service."""

    def __init__(self, start=datetime(2024, 5, 1, 9, 30, 0)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


def make_db(db_path, strategy=StorageStrategy.BLOB, **settings):
    """Build a LocalDatabase with explicit settings so FIELD_NOTES_* env vars don't leak in."""
    config = ConfigManager(db_path=db_path, storage_strategy=strategy, **settings)
    return LocalDatabase(db_path, storage_strategy=strategy, config=config)


def raw_execute(db, sql, params=()):
    """Run SQL on a fresh sqlite3 connection, which has foreign key checks off."""
    with closing(sqlite3.connect(db.db_path)) as conn:
        conn.execute(sql, params)
        conn.commit()


@pytest.fixture
def db_path():
    """Path of a temporary database file."""
    db_fd, path = tempfile.mkstemp(suffix='.db3')
    os.close(db_fd)
    os.unlink(path)

    yield path

    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def test_db(db_path):
    """Create a temporary blob-strategy database."""
    db = make_db(db_path)
    yield db
    db.close()


@pytest.fixture
def path_db(db_path):
    """Create a temporary path-list-strategy database."""
    db = make_db(db_path, StorageStrategy.PATH_LIST)
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog(test_db, clock):
    """Catalog service over the blob-strategy database."""
    return CatalogService(test_db, clock=clock)


@pytest.fixture
def path_catalog(path_db, clock):
    """Catalog service over the path-list-strategy database."""
    return CatalogService(path_db, clock=clock)
