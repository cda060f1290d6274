"""
Durable key/value store for Memory Palace.

A single SQLAlchemy table holds opaque blobs keyed by string. SQLite is the
default backend; any SQLAlchemy URL works.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional

from sqlalchemy import Column, DateTime, LargeBinary, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from memory_palace.config import ensure_data_dir, get_database_url


Base = declarative_base()

# Module-level engine singleton for the configured database
_engine: Optional[Engine] = None


class StoreEntry(Base):
    """One blob in the key/value store."""
    __tablename__ = "palace_store"

    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        nullable=False
    )

    def __repr__(self):
        return f"<StoreEntry(key='{self.key}', bytes={len(self.value or b'')})>"


def create_store_engine(db_url: str) -> Engine:
    """Create a SQLAlchemy engine for the given URL."""
    if db_url.startswith("sqlite"):
        if db_url != "sqlite:///:memory:":
            ensure_data_dir()
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    return create_engine(db_url, pool_pre_ping=True, echo=False)


def get_engine() -> Engine:
    """Get the engine for the configured database, creating it lazily."""
    global _engine
    if _engine is None:
        _engine = create_store_engine(get_database_url())
    return _engine


def reset_engine() -> None:
    """Dispose of the module-level engine."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create the store table if needed.

    Safe to call multiple times - only creates tables that don't exist.
    """
    Base.metadata.create_all(bind=engine or get_engine())


class KeyValueStore:
    """
    Opaque blob storage keyed by string.

    Usage:
        store = KeyValueStore()
        store.put("graph", b"...")
        blob = store.get("graph")
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()
        init_db(self.engine)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Auto-commits on exit, rolls back on exception.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def put(self, key: str, blob: bytes) -> None:
        """Store a blob, overwriting any previous value for the key."""
        with self.session_scope() as session:
            entry = session.get(StoreEntry, key)
            if entry is None:
                session.add(StoreEntry(key=key, value=blob))
            else:
                entry.value = blob

    def get(self, key: str) -> Optional[bytes]:
        """Fetch a blob, or None if the key was never stored."""
        with self.session_scope() as session:
            entry = session.get(StoreEntry, key)
            return bytes(entry.value) if entry is not None else None
