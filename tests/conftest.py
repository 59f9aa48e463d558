from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.aivora.db.db_models import Base


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for key in ("AIVORA_DATABASE_URL", "AIVORA_WAVESPEED_API_KEY", "AIVORA_BLOB_BACKEND"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)
