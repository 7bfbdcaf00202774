"""
Database connection and session management for Registrations Service.
Provides transaction scopes for the registration ledger and notification store.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator, Optional
import logging

from app.core.errors import DomainError, InternalError
from app.models.base import Base
# Model modules are imported so their tables are registered on Base.metadata
from app.models import event as event_models, registration, notification  # noqa: F401

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager for registration operations.
    Handles connection pooling and transaction management.
    """

    def __init__(self):
        self.engine = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self, db_url: Optional[str] = None):
        """
        Initialize database connections.

        Args:
            db_url: Explicit database URL; read from config when omitted
        """
        if self._initialized:
            return

        try:
            if db_url is None:
                from app.core.config import config
                db_url = await config.get_database_url()
                db_config = await config.get_database_config()
            else:
                db_config = None

            self.engine = self._create_engine(db_url, db_config)
            self.session_factory = sessionmaker(
                bind=self.engine,
                class_=Session,
                autoflush=False,
                expire_on_commit=False
            )

            self._setup_event_listeners()

            self._initialized = True
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    def _create_engine(self, db_url: str, db_config: Optional[dict]):
        """Create the engine: pooled for PostgreSQL, one shared connection for in-memory SQLite."""
        if db_url.startswith("sqlite"):
            if db_url == "sqlite://" or ":memory:" in db_url:
                return create_engine(
                    db_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False
                )
            return create_engine(db_url, connect_args={"check_same_thread": False}, echo=False)

        db_config = db_config or {}
        return create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=db_config.get("pool_size", 20),
            max_overflow=db_config.get("max_overflow", 30),
            pool_timeout=db_config.get("pool_timeout", 30),
            pool_recycle=db_config.get("pool_recycle", 3600),
            echo=False
        )

    def _setup_event_listeners(self):
        """Set up database event listeners for consistency monitoring."""

        @event.listens_for(self.engine, "connect")
        def set_connection_parameters(dbapi_connection, connection_record):
            """Set lock and statement timeouts on PostgreSQL connections."""
            if self.engine.dialect.name == "postgresql":
                with dbapi_connection.cursor() as cursor:
                    cursor.execute("SET default_transaction_isolation TO 'read committed'")
                    cursor.execute("SET lock_timeout TO '30s'")
                    cursor.execute("SET statement_timeout TO '60s'")

        @event.listens_for(self.engine, "checkout")
        def receive_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Database connection checked out")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic transaction management.
        Commits on success and rolls back on exceptions.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except DomainError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    @contextmanager
    def get_transaction_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with explicit transaction control.
        The caller commits; anything left uncommitted is rolled back.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            session.begin()
            yield session
        except DomainError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            logger.error(f"Transaction session error: {e}")
            raise
        finally:
            session.close()

    async def create_tables(self):
        """Create all database tables."""
        if not self._initialized:
            await self.initialize()

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    async def drop_tables(self):
        """Drop all database tables (use with caution)."""
        if not self._initialized:
            await self.initialize()

        Base.metadata.drop_all(bind=self.engine)
        logger.info("Database tables dropped successfully")

    def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close all database connections."""
        if self.engine:
            self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


@contextmanager
def storage_errors(operation: str, **context):
    """
    Turn unexpected storage failures into an opaque InternalError.
    The failure is logged with the operation name and the ids involved.
    """
    try:
        yield
    except SQLAlchemyError as e:
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        logger.error(f"Storage failure during {operation} ({details}): {e}", exc_info=True)
        raise InternalError() from e
