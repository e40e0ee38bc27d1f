"""
Database Connection Management

Synchronous SQLAlchemy 2.0 engine and session handling for the inventory
warehouse. In-memory SQLite shares a single connection so every session sees
the same tables.
"""

from contextlib import contextmanager
from typing import Generator, Optional

import structlog
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from urban_retail.config import get_settings
from urban_retail.database.models import Base

logger = structlog.get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url)


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create a database engine and make sure the schema exists.

    Args:
        url: SQLAlchemy URL (defaults to DATABASE_URL)
        echo: Echo SQL statements (defaults to DATABASE_ECHO)

    Returns:
        Engine: Engine with all warehouse tables created
    """
    settings = get_settings()
    url = url or settings.database.url
    engine_config = {
        "echo": settings.database.echo if echo is None else echo,
        "future": True,
    }

    if _is_memory_sqlite(url):
        engine_config.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    engine = create_engine(url, **engine_config)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("Database connection established", dialect=engine.dialect.name)

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build a session factory bound to the engine"""
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Provide a transactional session.

    Commits on success, rolls back and re-raises on error, always closes.

    Example:
        with session_scope(factory) as db:
            db.add(row)
    """
    session = factory()
    try:
        yield session
        session.commit()
        logger.debug("Database session committed successfully")
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        session.rollback()
        raise
    finally:
        session.close()
