# tests/routers/conftest.py
"""
API test fixtures.

The app runs with a fresh in-memory repository and a PortfolioService wired
to the stub price provider, so no request reaches the network.
"""

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_portfolio_service, get_repository
from app.main import app
from app.repositories import InMemoryPortfolioRepository
from app.services.portfolio_service import PortfolioService


@pytest.fixture
def api_repository() -> InMemoryPortfolioRepository:
    return InMemoryPortfolioRepository()


@pytest.fixture
def api_service(price_provider) -> PortfolioService:
    return PortfolioService(price_provider, refresh_delay=0)


@pytest.fixture(scope="function")
def client(api_repository, api_service) -> TestClient:
    """Create TestClient with repository and service overrides."""

    def override_get_repository():
        yield api_repository

    app.dependency_overrides[get_repository] = override_get_repository
    app.dependency_overrides[get_portfolio_service] = lambda: api_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
