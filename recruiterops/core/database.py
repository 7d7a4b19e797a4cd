"""
Database configuration and connection management.

This module provides:
- SQLAlchemy table definitions for profiles, pending purchases, pipeline and audit logs
- A Database object owning the engine and session factory
- Test database support (SQLite in-memory)

There is no module-level engine: the app factory builds one Database and
hands it to every service that needs the store.
"""
from typing import Optional, Generator
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Text, Index, ForeignKey
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func, select

from recruiterops.core.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings.

    For testing, TEST_DATABASE_URL takes precedence.
    """
    return settings.TEST_DATABASE_URL or settings.DATABASE_URL


def _build_engine(url: str, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        # A single shared connection keeps in-memory databases alive across sessions
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=echo,
    )


class Database:
    """Engine plus session factory for one database.

    Usage:
        db = Database("postgresql://...")
        with db.session() as session:
            session.execute(...)
    """

    def __init__(self, url: Optional[str] = None, *, echo: bool = False):
        url = url or get_database_url()
        if not url:
            raise ValueError(
                "DATABASE_URL is not configured. "
                "Set DATABASE_URL in environment or .env file."
            )
        self.url = url
        self.engine = _build_engine(url, echo=echo)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session scope: commit on success, roll back on any exception."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create all tables defined in metadata (idempotent)."""
        metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        """
        Drop all tables defined in metadata.

        WARNING: This is destructive! Only use in tests or development.
        """
        metadata.drop_all(bind=self.engine)

    def check_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except Exception as exc:
            logger.warning(f"Database connection check failed: {exc}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


# Entitlement records, one per account
profiles = Table(
    'profiles',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('email', String(320), nullable=False, unique=True),
    # User-owned fields
    Column('full_name', Text, nullable=True),
    Column('webhook_outreach', Text, nullable=True),
    Column('webhook_calendar', Text, nullable=True),
    # Subscription fields (written by reconciliation only)
    Column('plan', String(50), nullable=False, server_default='starter'),
    Column('subscription_status', String(50), nullable=False, server_default='trialing'),
    Column('trial_ends_at', DateTime(timezone=True), nullable=True),
    Column('gumroad_sale_id', String(100), nullable=True),
    Column('gumroad_subscriber_id', String(100), nullable=True),
    Column('last_event_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_profiles_status', 'subscription_status'),
)

# Purchases waiting for the buyer to sign up, keyed by normalized email
pending_subscriptions = Table(
    'pending_subscriptions',
    metadata,
    Column('email', String(320), primary_key=True),
    Column('plan', String(50), nullable=False),
    Column('gumroad_sale_id', String(100), nullable=True),
    Column('gumroad_subscriber_id', String(100), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_pending_subscriptions_created_at', 'created_at'),
)

# Job orders
jobs = Table(
    'jobs',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), ForeignKey('profiles.id'), nullable=False, index=True),
    Column('title', Text, nullable=False),
    Column('client', Text, nullable=True),
    Column('status', String(50), nullable=False, server_default='active'),  # active, paused, filled
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('archived_at', DateTime(timezone=True), nullable=True),
    # Cascade archival pattern: (user_id, archived_at)
    Index('idx_jobs_user_archived', 'user_id', 'archived_at'),
)

# Candidates attached to a job
candidates = Table(
    'candidates',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('job_id', String(100), ForeignKey('jobs.id'), nullable=False, index=True),
    Column('name', Text, nullable=False),
    Column('stage', String(50), nullable=False, server_default='Sourced'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('archived_at', DateTime(timezone=True), nullable=True),
    Index('idx_candidates_job_archived', 'job_id', 'archived_at'),
)

# Raw payment-provider payloads, written before any processing
webhook_logs = Table(
    'webhook_logs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('alert_type', String(100), nullable=True),
    Column('email', String(320), nullable=True),
    Column('sale_id', String(100), nullable=True, index=True),
    Column('raw_payload', Text, nullable=True),
    Column('received_at', DateTime(timezone=True), server_default=func.now(), nullable=False, index=True),
)

# Business audit trail (activations, cancellations, claims)
usage_logs = Table(
    'usage_logs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('customer_id', String(100), nullable=True, index=True),
    Column('action', String(100), nullable=False, index=True),
    Column('metadata', JSON, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False, index=True),
    Index('idx_usage_logs_customer_created', 'customer_id', 'created_at'),
)
