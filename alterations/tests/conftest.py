from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlmodel import Session, SQLModel

from alterations.api.deps import get_db, get_today
from alterations.application.service_factory import (
    SchedulingServices,
    build_scheduling_services,
)
from alterations.core.config import Settings
from alterations.core.db import create_db_engine
from alterations.infrastructure.events import (
    InMemoryEventBus,
    register_default_handlers,
)
from alterations.main import create_app
from alterations.tests.factories import fixed_today, make_settings


@pytest.fixture
def config() -> Settings:
    return make_settings()


@pytest.fixture
def engine(config: Settings) -> Generator[Engine, None, None]:
    """Fresh in-memory schema per test."""
    test_engine = create_db_engine(config)
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return register_default_handlers(InMemoryEventBus())


@pytest.fixture
def services(
    session: Session, config: Settings, event_bus: InMemoryEventBus
) -> SchedulingServices:
    return build_scheduling_services(session, config, event_bus, today=fixed_today)


@pytest.fixture
def client(
    config: Settings, engine: Engine, session: Session
) -> Generator[TestClient, None, None]:
    app = create_app(config, engine)

    def get_session_override():
        return session

    app.dependency_overrides[get_db] = get_session_override
    app.dependency_overrides[get_today] = lambda: fixed_today
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
