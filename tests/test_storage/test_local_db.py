"""Tests for database initialization and transaction handling."""
import os
import threading
import time
from unittest.mock import patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import make_db
from field_notes.enums import MediaKind, StorageStrategy
from field_notes.exceptions import InvalidArgument, StorageFailure
from field_notes.local_db import LocalDatabase
from field_notes.models import Base
from field_notes.schemas import Entry


def test_initialization_is_lazy(test_db):
    """Test that nothing touches the disk before the first operation."""
    assert not test_db.is_initialized
    assert test_db.engine is None
    assert not os.path.exists(test_db.db_path)

    assert test_db.entries.list_all() == []

    assert test_db.is_initialized
    assert os.path.exists(test_db.db_path)


def test_schema_created(test_db):
    """Test that every table exists after initialization."""
    test_db.initialize()
    tables = set(inspect(test_db.engine).get_table_names())
    assert {'entries', 'media', 'voice_recordings', 'app_config'} <= tables


def test_initialize_runs_once(test_db):
    """Test that repeated initialization leaves the schema alone."""
    with patch.object(Base.metadata, 'create_all', wraps=Base.metadata.create_all) as create_all:
        test_db.initialize()
        test_db.initialize()
        test_db.entries.list_all()
    assert create_all.call_count == 1


def test_concurrent_first_use_initializes_once(test_db):
    """Test that racing first callers create the schema exactly once."""
    original_create_all = Base.metadata.create_all
    calls = []

    def slow_create_all(*args, **kwargs):
        calls.append(threading.get_ident())
        time.sleep(0.05)
        return original_create_all(*args, **kwargs)

    workers = 8
    barrier = threading.Barrier(workers)
    errors = []
    results = []

    def first_call():
        barrier.wait()
        try:
            results.append(test_db.entries.list_all())
        except Exception as e:
            errors.append(e)

    with patch.object(Base.metadata, 'create_all', side_effect=slow_create_all):
        threads = [threading.Thread(target=first_call) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

    assert errors == []
    assert results == [[]] * workers
    assert len(calls) == 1


def test_memory_database():
    """Test that an in-memory database keeps its data across sessions."""
    db = make_db(':memory:')
    blob_id = db.blobs.save(b'\x89PNG', MediaKind.IMAGE)
    assert db.blobs.get(blob_id, MediaKind.IMAGE).data == b'\x89PNG'
    db.close()


def test_strategy_recorded_and_enforced(db_path):
    """Test that a database keeps the storage strategy it was created with."""
    blob_db = make_db(db_path, StorageStrategy.BLOB)
    blob_db.initialize()
    blob_db.close()

    path_db = make_db(db_path, StorageStrategy.PATH_LIST)
    with pytest.raises(InvalidArgument, match="uses 'blob' storage"):
        path_db.initialize()
    assert not path_db.is_initialized

    reopened = make_db(db_path, StorageStrategy.BLOB)
    reopened.initialize()
    assert reopened.is_initialized
    reopened.close()


def test_strategy_from_config(db_path):
    """Test that the strategy falls back to configuration."""
    db = LocalDatabase(db_path, config=make_db(db_path, StorageStrategy.PATH_LIST).config)
    assert db.storage_strategy is StorageStrategy.PATH_LIST


def test_unusable_location_raises_storage_failure(tmp_path):
    """Test that a database path under a regular file fails cleanly."""
    blocker = tmp_path / 'not_a_directory'
    blocker.write_text('')
    db = make_db(str(blocker / 'fieldnotes.db3'))

    with pytest.raises(StorageFailure):
        db.entries.list_all()
    assert not db.is_initialized


def test_session_scope_rolls_back_on_error(test_db):
    """Test that nothing from a failed scope is persisted."""
    with pytest.raises(RuntimeError):
        with test_db.session_scope():
            test_db.blobs.save(b'first', MediaKind.IMAGE)
            test_db.blobs.save(b'voice', MediaKind.AUDIO, 3)
            raise RuntimeError("capture aborted")

    assert test_db.blobs.list_media_ids() == set()
    assert test_db.blobs.list_voice_recording_ids() == set()


def test_nested_scopes_commit_once(test_db):
    """Test that inner scopes share the outer session."""
    with test_db.session_scope() as outer:
        with test_db.session_scope() as inner:
            assert inner is outer
        blob_id = test_db.blobs.save(b'data', MediaKind.IMAGE)

    assert test_db.blobs.list_media_ids() == {blob_id}


def test_dangling_reference_rejected_at_commit(test_db):
    """Test that an entry pointing at a missing blob is refused."""
    with pytest.raises(InvalidArgument, match="constraint"):
        test_db.entries.insert(Entry(name="Dangling", media_id=999))

    assert test_db.entries.list_all() == []


def test_database_errors_become_storage_failure(test_db):
    """Test that driver failures surface as StorageFailure."""
    test_db.initialize()
    failure = OperationalError('INSERT INTO media', {}, Exception('disk I/O error'))

    with patch.object(Session, 'flush', side_effect=failure):
        with pytest.raises(StorageFailure, match="disk I/O error"):
            test_db.blobs.save(b'data', MediaKind.IMAGE)

    assert test_db.blobs.list_media_ids() == set()


def test_close_and_reopen(test_db):
    """Test that data survives closing the engine."""
    blob_id = test_db.blobs.save(b'kept', MediaKind.IMAGE)
    test_db.close()
    assert not test_db.is_initialized

    assert test_db.blobs.get(blob_id, MediaKind.IMAGE).data == b'kept'


def test_close_from_other_thread_waits_for_running_operation(test_db):
    """Test that a close racing a just-initialized operation cannot pull the engine away."""
    original_initialize = test_db.initialize
    closers = []

    def initialize_then_close_elsewhere():
        original_initialize()
        closer = threading.Thread(target=test_db.close)
        closer.start()
        closer.join(timeout=0.2)
        closers.append(closer)

    with patch.object(test_db, 'initialize', side_effect=initialize_then_close_elsewhere):
        blob_id = test_db.blobs.save(b'kept', MediaKind.IMAGE)

    for closer in closers:
        closer.join(timeout=5)
    assert closers and not closers[0].is_alive()
    assert not test_db.is_initialized
    assert test_db.blobs.get(blob_id, MediaKind.IMAGE).data == b'kept'
