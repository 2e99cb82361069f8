"""Shared test fixtures."""
from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import offsync.config as config
from offsync.db.engine import reset_engine

# Import all models so SQLModel.metadata knows about them
from offsync.models.record import Record, SyncMetadata  # noqa: F401
from offsync.models.remote_item import RemoteItem  # noqa: F401
from offsync.models.sync import SyncLog  # noqa: F401
from offsync.replica.store import LocalReplica


def make_memory_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point any lazily-built engine at a throwaway file, never the working directory."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'offsync.db'}")
    monkeypatch.setenv("SERVICE_DATABASE_URL", f"sqlite:///{tmp_path / 'offsync_server.db'}")
    config._settings = None
    reset_engine()
    yield
    config._settings = None
    reset_engine()


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine for the local replica."""
    engine = make_memory_engine()
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="replica")
def replica_fixture(engine) -> LocalReplica:
    return LocalReplica(engine)


@pytest.fixture(name="synced_record")
def synced_record_fixture(replica: LocalReplica) -> Record:
    """A persisted record the remote store already holds (synced=True)."""
    return replica.upsert_local(Record(
        id="item_1736926200000_abc123def",
        title="Morning notes",
        description="Pages 1-3",
        created_at=datetime(2025, 1, 15, 7, 30),
        updated_at=datetime(2025, 1, 15, 7, 30),
        synced=True,
    ))


@pytest.fixture(name="server_engine")
def server_engine_fixture():
    """Separate in-memory SQLite engine for the remote items service."""
    engine = make_memory_engine()
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="other_replica")
def other_replica_fixture():
    """A second client's replica, for multi-device scenarios."""
    engine = make_memory_engine()
    yield LocalReplica(engine)
    SQLModel.metadata.drop_all(engine)
