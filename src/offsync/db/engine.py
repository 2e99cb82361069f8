"""
SQLModel engine singletons and session dependency.

The client replica and the reference service keep separate databases:
get_engine() holds Record, SyncMetadata and SyncLog; get_service_engine()
holds RemoteItem only.
"""
from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from offsync.config import get_settings

_engine = None
_service_engine = None


def _sqlite_engine(url: str):
    return create_engine(
        url,
        connect_args={"check_same_thread": False},  # SQLite only; safe for FastAPI
    )


def get_engine():
    """Return the client replica engine, creating it on first call."""
    global _engine
    if _engine is None:
        from offsync.models.record import Record, SyncMetadata
        from offsync.models.sync import SyncLog

        _engine = _sqlite_engine(get_settings().database_url)
        SQLModel.metadata.create_all(
            _engine,
            tables=[Record.__table__, SyncMetadata.__table__, SyncLog.__table__],
        )
    return _engine


def get_service_engine():
    """Return the reference service engine, creating it on first call."""
    global _service_engine
    if _service_engine is None:
        from offsync.models.remote_item import RemoteItem

        _service_engine = _sqlite_engine(get_settings().service_database_url)
        SQLModel.metadata.create_all(_service_engine, tables=[RemoteItem.__table__])
    return _service_engine


def reset_engine() -> None:
    """Dispose of both cached engines so the next call rebuilds them."""
    global _engine, _service_engine
    for engine in (_engine, _service_engine):
        if engine is not None:
            engine.dispose()
    _engine = None
    _service_engine = None


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a service DB session."""
    with Session(get_service_engine()) as session:
        yield session
