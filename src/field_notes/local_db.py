from contextlib import contextmanager
from pathlib import Path
import logging
import threading

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from field_notes.models import Base, AppConfig
from field_notes.enums import StorageStrategy
from field_notes.exceptions import InvalidArgument, StorageFailure
from field_notes.config_manager import ConfigManager

from .repositories.blob_repository import BlobRepository
from .repositories.entry_repository import EntryRepository

MEMORY_DB_PATH = ':memory:'
STORAGE_STRATEGY_KEY = 'storage_strategy'


class LocalDatabase:
    """Lazily initialized SQLite store holding entries, media and voice recordings.

    Nothing touches the disk until the first operation. All operations run
    through :meth:`session_scope`, which serializes them on one lock so the
    store behaves as a single writer.
    """

    def __init__(self, db_path=None, storage_strategy=None, config=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config or ConfigManager()
        self.db_path = str(db_path or self.config.db_path)
        self.storage_strategy = StorageStrategy(storage_strategy or self.config.storage_strategy)

        self.engine = None
        self.Session = None
        self._init_lock = threading.Lock()
        self._lock = threading.RLock()
        self._active_session = None

        self.blobs = BlobRepository(self)
        self.entries = EntryRepository(self)
        self.logger.debug(f"LocalDatabase configured for {self.db_path} ({self.storage_strategy.value} storage)")

    @property
    def is_initialized(self):
        return self.Session is not None

    def initialize(self):
        """Create the engine and schema on first use.

        Concurrent first callers block on the init lock; only the first one
        creates the schema, the rest see it already published.
        """
        if self.Session is not None:
            return
        with self._init_lock:
            if self.Session is not None:
                return

            engine = self._create_engine()
            try:
                self.logger.info(f"Creating database tables in {self.db_path}")
                Base.metadata.create_all(engine)
                self._check_storage_strategy(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                self.logger.error(f"Database initialization failed for {self.db_path}: {e}", exc_info=True)
                raise StorageFailure(f"Could not initialize database at {self.db_path}: {e}") from e
            except Exception:
                engine.dispose()
                raise

            self.engine = engine
            self.Session = sessionmaker(bind=engine, expire_on_commit=False)
            self.logger.info("Database initialization completed")

    def _create_engine(self):
        connect_args = {'check_same_thread': False, 'timeout': self.config.sqlite_timeout}
        if self.db_path == MEMORY_DB_PATH:
            # One shared connection, otherwise every connection sees its own empty database
            engine = create_engine('sqlite://', connect_args=connect_args, poolclass=StaticPool,
                                   echo=self.config.echo_sql)
        else:
            try:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self.logger.error(f"Cannot create database directory for {self.db_path}: {e}")
                raise StorageFailure(f"Cannot create database directory for {self.db_path}: {e}") from e
            engine = create_engine(f'sqlite:///{self.db_path}', connect_args=connect_args,
                                   echo=self.config.echo_sql)

        @event.listens_for(engine, "connect")
        def enable_foreign_keys(db_conn, conn_record):
            cursor = db_conn.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

        return engine

    def _check_storage_strategy(self, engine):
        """Record the storage strategy on a new database, or refuse a mismatched one."""
        session = sessionmaker(bind=engine)()
        try:
            record = session.query(AppConfig).filter_by(key=STORAGE_STRATEGY_KEY).first()
            if record is None:
                session.add(AppConfig(key=STORAGE_STRATEGY_KEY, value=self.storage_strategy.value))
                session.commit()
                self.logger.info(f"New database set to '{self.storage_strategy.value}' storage")
            elif record.value != self.storage_strategy.value:
                raise InvalidArgument(
                    f"Database {self.db_path} uses '{record.value}' storage and cannot be opened "
                    f"with '{self.storage_strategy.value}' storage"
                )
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations.

        Scopes nest: an inner scope on the same thread reuses the outer session
        and leaves commit or rollback to the outermost one, so a group of store
        calls lands in a single commit.
        """
        with self._lock:
            if self._active_session is not None:
                yield self._active_session
                return

            # Under _lock so a concurrent close() cannot drop the engine before Session() runs
            self.initialize()
            session = self.Session()
            self._active_session = session
            try:
                yield session
                session.commit()
            except IntegrityError as e:
                session.rollback()
                self.logger.warning(f"Write rejected by database constraint: {e.orig}")
                raise InvalidArgument(f"Rejected by database constraint: {e.orig}") from e
            except SQLAlchemyError as e:
                session.rollback()
                self.logger.error(f"Storage operation failed: {e}", exc_info=True)
                raise StorageFailure(f"Storage operation failed: {e}") from e
            except Exception:
                session.rollback()
                raise
            finally:
                self._active_session = None
                session.close()

    def close(self):
        """Dispose of the engine. The next operation initializes it again.

        Waits for a running operation on another thread to finish first.
        """
        with self._lock, self._init_lock:
            if self.engine is not None:
                self.engine.dispose()
                self.logger.info("Database engine disposed")
            self.engine = None
            self.Session = None
