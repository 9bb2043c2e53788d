"""
Database connection and session management for Seatbook.
Every booking step runs in its own short transaction.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
from typing import Generator, Optional
import logging

from seatbook.core.config import config
from seatbook.models.ticketing import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager.
    Handles connection pooling and transaction management.
    """

    def __init__(self):
        self.engine: Optional[Engine] = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self):
        """Initialize database connections from configuration."""
        if self._initialized:
            return

        try:
            db_url = await config.get_database_url()

            if db_url.startswith("sqlite"):
                engine = create_engine(
                    db_url,
                    connect_args={"check_same_thread": False},
                    future=True
                )
            else:
                db_config = await config.get_database_config()
                engine = create_engine(
                    db_url,
                    poolclass=QueuePool,
                    pool_size=db_config["pool_size"],
                    max_overflow=db_config["max_overflow"],
                    pool_timeout=db_config["pool_timeout"],
                    pool_recycle=db_config["pool_recycle"],
                    pool_pre_ping=True,
                    echo=False,
                    future=True
                )

            self.use_engine(engine)
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    def use_engine(self, engine: Engine):
        """Bind the manager to an already created engine."""
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=Session,
            autoflush=False,
            expire_on_commit=False
        )
        self._setup_event_listeners()
        self._initialized = True

    def _setup_event_listeners(self):
        """Set up per-connection settings."""

        @event.listens_for(self.engine, "connect")
        def set_connection_settings(dbapi_connection, connection_record):
            """Set connection parameters for consistency."""
            if self.engine.dialect.name == "postgresql":
                with dbapi_connection.cursor() as cursor:
                    cursor.execute("SET default_transaction_isolation TO 'read committed'")
                    cursor.execute("SET lock_timeout TO '30s'")
                    cursor.execute("SET statement_timeout TO '60s'")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic transaction management.
        Commits on success, rolls back on exceptions.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Run a trivial query to check connectivity."""
        with self.get_session() as session:
            session.execute(text("SELECT 1"))
        return True

    async def create_tables(self):
        """Create all database tables."""
        if not self._initialized:
            await self.initialize()

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    async def close(self):
        """Close all database connections."""
        if self.engine:
            self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()
