"""Shared pytest fixtures for the serialize_attributes test suite."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from serialize_attributes.settings import reload_settings
from tests.models import Base


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear ``SERIALIZE_ATTRIBUTES_*`` overrides and the settings cache around each test."""

    for var in list(os.environ):
        if var.upper().startswith("SERIALIZE_ATTRIBUTES_"):
            monkeypatch.delenv(var, raising=False)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine with the fixture tables created."""

    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session
