"""Database configuration and session management."""

from typing import Optional

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config.logging import get_logger
from ..config.settings import get_settings

logger = get_logger(__name__)

# Base class for all ORM models
Base = declarative_base()

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _configure_sqlite(dbapi_connection, connection_record):
    """Configure SQLite for concurrent readers and enforced foreign keys."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=30000")
    finally:
        cursor.close()


def create_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create a database engine for the given URL."""
    settings = get_settings()

    logger.info(
        "Creating database engine",
        url_type="sqlite" if database_url.startswith("sqlite") else "other",
        echo_sql=echo,
    )

    engine_kwargs = {
        "echo": echo,
        "pool_pre_ping": settings.database_pool_pre_ping,
        "pool_recycle": settings.database_pool_recycle,
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # A single shared connection keeps the in-memory database alive
            engine_kwargs["poolclass"] = StaticPool
    else:
        # PostgreSQL/MySQL configuration
        engine_kwargs.update({"pool_size": 5, "max_overflow": 10})

    engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite)

    return engine


def get_engine() -> Engine:
    """Get the database engine, creating it if necessary."""
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_engine_from_url(
            settings.get_database_url(), echo=settings.database_echo_sql
        )
        logger.info("Database engine initialized")

    return _engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build a session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,  # Keep objects accessible after commit
    )


def get_session_factory() -> sessionmaker:
    """Get the session factory, creating it if necessary."""
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = create_session_factory(get_engine())
        logger.debug("Session factory created")

    return _SessionLocal


def get_session_sync() -> Session:
    """
    Get a synchronous database session.

    Returns:
        Session: SQLAlchemy database session (caller responsible for closing)
    """
    return get_session_factory()()


def create_tables(engine: Optional[Engine] = None):
    """Create all database tables."""
    # Register models on the metadata before creating
    from . import models  # noqa: F401

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("Database tables created successfully")


def drop_tables(engine: Optional[Engine] = None):
    """Drop all database tables."""
    logger.warning("Dropping all database tables")
    Base.metadata.drop_all(bind=engine or get_engine())
    logger.warning("All database tables dropped")


def check_database_health(session_factory: Optional[sessionmaker] = None) -> dict:
    """
    Check database connectivity and return health information.

    Args:
        session_factory: Factory to check, defaults to the global one

    Returns:
        dict: Database health status
    """
    try:
        with (session_factory or get_session_factory())() as session:
            health_check = session.execute(text("SELECT 1 as health_check")).scalar()

        return {"status": "healthy", "connectivity": health_check == 1}

    except Exception as e:
        logger.error("Database health check failed", error=str(e), exc_info=True)
        return {"status": "unhealthy", "error": str(e), "connectivity": False}
