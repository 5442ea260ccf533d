"""
Database engine construction.
Uses SQLAlchemy for Postgres connections; the engine is built once per app
and handed to the repository, never stored as a module global.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from catalog.config import Settings

logger = logging.getLogger("catalog.database")

# Base class for all our database models
Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    """
    Build the pooled engine for the product store.

    Pool limits mirror the deployment defaults: 5 idle connections,
    10 open at most, recycled every 3 minutes.
    """
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle_seconds,
        connect_args={"connect_timeout": settings.db_connect_timeout_seconds},
    )
    logger.info("Product store engine created (pool_size=%s, max_overflow=%s)",
                settings.db_pool_size, settings.db_max_overflow)
    return engine
