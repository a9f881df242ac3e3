"""Database engine, session factory and storage selection."""

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.config import Settings, get_settings
from backend.app.db.inmemory import InMemoryStorage
from backend.app.db.models import Base
from backend.app.db.repositories import Storage
from backend.app.db.sql_repositories import SqlStorage

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    database_url = settings.database_url

    if not database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )

    # Heroku-style URLs use the legacy scheme name
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(database_url, pool_pre_ping=True, echo=False)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_storage(settings: Settings) -> Storage:
    """Build the storage backend selected by configuration.

    Args:
        settings: Application settings

    Returns:
        SqlStorage when DATABASE_URL is set, InMemoryStorage otherwise
    """
    if not settings.database_url:
        logger.info("DATABASE_URL not set, using in-memory storage")
        return InMemoryStorage()

    engine = create_engine_from_settings(settings)
    if engine.dialect.name == "sqlite":
        # Local SQLite databases skip alembic
        Base.metadata.create_all(engine)
    logger.info("Using SQL storage", extra={"structured": {"dialect": engine.dialect.name}})
    return SqlStorage(create_session_factory(engine))


# Process-wide storage instance
_storage: Storage | None = None


def get_storage() -> Storage:
    """FastAPI dependency returning the process-wide storage instance."""
    global _storage
    if _storage is None:
        _storage = create_storage(get_settings())
    return _storage
