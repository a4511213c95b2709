"""
Database Connection Management

Provides engine and session factory creation for the account store.
"""

# Standard library imports
import logging

# Third-party imports
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Local imports
from timecapsule_auth.infrastructure.config import DatabaseConfig

logger = logging.getLogger(__name__)


def create_db_engine(config: DatabaseConfig) -> Engine:
    """
    Create a SQLAlchemy engine for the configured database.

    In-memory SQLite shares a single connection so every session sees the
    same database.
    """
    if config.url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in config.url or config.url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {"pool_pre_ping": True, "pool_timeout": config.pool_timeout}

    engine = create_engine(config.url, echo=config.echo, **kwargs)
    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create the session factory repositories open their sessions from."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    from timecapsule_auth.infrastructure.auth.models import Base

    Base.metadata.create_all(bind=engine)


def check_connection(engine: Engine) -> bool:
    """Run a trivial query to confirm the database answers."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        return False
