"""
PostgreSQL database configuration.

Provides the declarative base, a lazily created pooled engine with the
pgvector extension enabled, and the per-request session dependency.
"""

import logging
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from mnemo.core.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy base class for models
Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


# ================================
# Engine and Session Factory
# ================================

def get_database_config() -> Dict[str, Any]:
    """
    Get PostgreSQL pool configuration.

    Returns:
        Database configuration dictionary
    """
    return {
        'pool_size': settings.db_pool_size,
        'max_overflow': settings.db_max_overflow,
        'pool_timeout': settings.db_pool_timeout,
        'pool_recycle': settings.db_pool_recycle,
        'pool_pre_ping': True,
        'echo': settings.log_level.upper() == "DEBUG",
        'connect_args': {
            'options': f"-c statement_timeout={settings.db_statement_timeout_ms}",
            'application_name': 'mnemo',
        }
    }


def _configure_connection(dbapi_connection, connection_record):
    """
    Configure PostgreSQL connection parameters.

    Args:
        dbapi_connection: Database connection
        connection_record: Connection record
    """
    try:
        cursor = dbapi_connection.cursor()
        cursor.execute("SET timezone = 'UTC'")
        cursor.close()
        logger.debug("PostgreSQL connection configured")
    except Exception as e:
        logger.warning(f"Failed to configure PostgreSQL connection: {e}")


def get_engine() -> Engine:
    """
    Get the pooled PostgreSQL engine, creating it on first use.

    Returns:
        Engine: SQLAlchemy engine
    """
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.database_url,
            poolclass=QueuePool,
            **get_database_config()
        )
        event.listen(_engine, "connect", _configure_connection)
        logger.info("Database engine created")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
            expire_on_commit=False
        )
    return _session_factory


# ================================
# Dependency Functions
# ================================

def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session

    Example:
        >>> from fastapi import Depends
        >>> def my_endpoint(db: Session = Depends(get_db)):
        ...     pass
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


# ================================
# Database Initialization
# ================================

def init_database(engine: Optional[Engine] = None) -> bool:
    """
    Enable pgvector and create all tables.

    Args:
        engine: Engine to initialise (defaults to the application engine)

    Returns:
        bool: True if successful, False otherwise
    """
    engine = engine or get_engine()
    try:
        # Import models to ensure they're registered
        from mnemo.models import memory  # noqa: F401

        if engine.dialect.name == "postgresql":
            with engine.begin() as connection:
                connection.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return False


# ================================
# Health Check Functions
# ================================

def check_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        with (engine or get_engine()).connect() as connection:
            connection.execute(text("SELECT 1")).fetchone()
        return True

    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def close_all_connections() -> None:
    """Close all database connections (for graceful shutdown)."""
    global _engine, _session_factory
    if _engine is None:
        return
    try:
        _engine.dispose()
        logger.info("All database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
    finally:
        _engine = None
        _session_factory = None
