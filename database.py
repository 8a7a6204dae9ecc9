"""Database setup and models for the mutation journal.

This module provides the database connection, the journal model and the
session factory, using SQLAlchemy with SQLite by default.
"""

from datetime import datetime

from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker

from logic.config import get_settings

Base = declarative_base()

engine = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


class MutationLog(Base):
    """Journal entry for one applied place mutation.

    Attributes:
        id: Primary key auto-incrementing ID.
        timestamp: When the mutation completed.
        user: Operator that issued the mutation.
        entity_type: Kind of entity (always ``place`` today).
        entity_id: ID of the place; negative for local-only places.
        action: create, update or delete.
        outcome: ``synced`` when the backend confirmed, ``degraded`` when the
            change only exists locally.
        before_value: Place before the change (JSON string).
        after_value: Place after the change (JSON string).
        description: Human-readable description of the change.
    """

    __tablename__ = "mutation_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    user = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(100), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    outcome = Column(String(20), nullable=False, index=True)
    before_value = Column(Text, nullable=True)
    after_value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    def to_dict(self):
        """Convert journal entry to dictionary.

        Returns:
            Dictionary representation of the journal entry.
        """
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "user": self.user,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "outcome": self.outcome,
            "before_value": self.before_value,
            "after_value": self.after_value,
            "description": self.description,
        }


def configure_database(url=None):
    """Bind the session factory to a database URL.

    Args:
        url: SQLAlchemy URL; defaults to ``TULA_DATABASE_URL``.

    Returns:
        The SQLAlchemy engine.
    """
    global engine
    url = url or get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    return engine


def init_db(url=None):
    """Initialize the database by creating all tables."""
    if engine is None or url:
        configure_database(url)
    Base.metadata.create_all(bind=engine)
