"""
Tagline Store Database

Engine and session factory for the store metadata.
Memory URLs share one connection so every session sees the same tables.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tagline.config import DATABASE_URL
from tagline.models import Base


def create_store_engine(database_url: str = DATABASE_URL):
    """
    Create SQLAlchemy engine for the store metadata.

    Args:
        database_url: SQLAlchemy URL ("sqlite://" keeps everything in memory)

    Returns:
        SQLAlchemy Engine
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def init_db(engine):
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
    return engine


def get_session_factory(database_url: str = DATABASE_URL):
    """
    Get SQLAlchemy session factory with the schema in place.

    Args:
        database_url: SQLAlchemy URL for the store metadata

    Returns:
        sessionmaker bound to an initialized engine
    """
    engine = init_db(create_store_engine(database_url))
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
