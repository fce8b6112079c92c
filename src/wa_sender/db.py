from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Engine, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class StoreEntry(Base):
    """One key of the local key-value store (a JSON document per key)."""

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# --- Engine & Session factory ---


def create_db_engine(database_url: str) -> Engine:
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
    )


def init_db(db_engine: Engine) -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=db_engine)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Build an engine for the given URL, create the tables and return its session factory."""
    db_engine = create_db_engine(database_url)
    init_db(db_engine)
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)

