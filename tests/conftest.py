"""
SGI Compliance Tracker - Test Configuration

Pytest fixtures and configuration.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

# Set testing environment before the application settings load
os.environ.setdefault("APP_ENV", "testing")

from app.config import Settings
from app.database import close_db, create_engine, create_session_factory, init_db
from app.services.data_service import DataService, build_data_service
from main import create_app, init_app_state

from tests.factories import FIXED_NOW, make_settings


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_settings: Settings):
    """Fresh in-memory database per test."""
    engine = create_engine(
        test_settings,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield create_session_factory(engine)
    await close_db(engine)


@pytest_asyncio.fixture(params=["database", "local"])
async def data_service(request, tmp_path, session_factory) -> AsyncGenerator[DataService, None]:
    """Data service over each persistence backend."""
    config = make_settings(tmp_path, backend=request.param)
    yield build_data_service(config, session_factory)


@pytest_asyncio.fixture
async def sql_data_service(test_settings: Settings, session_factory) -> DataService:
    return build_data_service(test_settings, session_factory)


@pytest_asyncio.fixture(scope="function")
async def app(test_settings: Settings, session_factory):
    """Application wired like the lifespan does, with a fixed clock."""
    application = create_app(test_settings)
    init_app_state(application, test_settings, session_factory)
    application.state.clock = lambda: FIXED_NOW
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client against the wired application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def requirement_payload() -> dict:
    return {
        "clause": "7.5",
        "sub_clause": "7.5.3",
        "clause_title": "Control de la información documentada",
        "description": "Controlar la información documentada",
        "standards": ["ISO 9001:2015 (Calidad)"],
        "responsible_area": "Calidad",
        "plant_ids": [" planta norte ", "mosquera"],
        "periodicity": "Trimestral",
    }
