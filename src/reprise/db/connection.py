"""
Database connection management for Reprise.

This module provides utilities for creating and managing database connections.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from reprise.db.models import Base


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL (e.g., sqlite:///reprise.db)
            echo: Whether to echo SQL statements (useful for debugging)
        """
        self.database_url = database_url
        self.engine: Engine = create_engine(database_url, echo=echo)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def create_all(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Usage:
            with db_manager.session() as session:
                entry = session.get(KVEntry, key)
                session.add(KVEntry(key=key, value=value))
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
