"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Database connection management for the request log.

Any SQLAlchemy URL works; the default is a SQLite file under ``~/.courier``.
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from courier.config.settings import DatabaseConfig
from courier.exceptions import StorageError

logger = logging.getLogger(__name__)


class DatabaseConnectionManager:
    """
    Owns the SQLAlchemy engine and session factory for the request log.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Create the engine, verify connectivity and ensure tables exist.

        Raises ``StorageError`` if the database cannot be reached.
        """
        if self._initialized:
            logger.warning("Database connection manager already initialized")
            return

        if not self.config.url:
            raise StorageError("No database URL configured")

        url = make_url(self.config.url)
        engine_kwargs = dict(echo=self.config.echo)

        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise each session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
            else:
                os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

        self._engine = create_engine(url, **engine_kwargs)

        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("Database connection failed: %s", e)
            self._engine.dispose()
            self._engine = None
            raise StorageError(f"Database connection failed: {e}") from e

        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self._engine,
        )

        from courier.db.models import Base
        Base.metadata.create_all(self._engine)
        logger.info("Database tables verified/created")

        self._initialized = True
        logger.info("Database connection manager initialized: %s", url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    def get_session(self) -> Session:
        """Return a new SQLAlchemy ``Session``.  Must ``close()`` after use."""
        if not self._initialized or self._session_factory is None:
            raise StorageError(
                "Database connection manager not initialized. Call initialize() first."
            )
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Transactional scope: commits on success, rolls back on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Database transaction failed, rolling back: %s", e)
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        """Return ``True`` if the database is reachable."""
        if not self._initialized or self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            return True
        except SQLAlchemyError as e:
            logger.error("Database health check failed: %s", e)
            return False

    def close(self) -> None:
        """Dispose of engine and close all pooled connections."""
        if self._engine is not None:
            logger.info("Closing database connection pool")
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
