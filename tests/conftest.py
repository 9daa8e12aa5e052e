"""
Test configuration and fixtures for WasteNot.

Every test gets its own InMemoryStore and upload directory, so no state is
shared between tests. The vision service is always the MockClaudeService;
no test talks to the Anthropic API.
"""

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from wastenot.dependencies import Services, build_services
from wastenot.main import create_app
from wastenot.models import User
from wastenot.services.file_service import FileService
from wastenot.services.store import InMemoryStore
from tests.factories import create_user
from tests.fixtures.mocks import MockClaudeService


# =============================================================================
# pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# =============================================================================
# Store and Storage Fixtures
# =============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh, empty store."""
    return InMemoryStore()


@pytest.fixture
def upload_dir(tmp_path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def file_service(services: Services) -> FileService:
    """File service writing into the test's upload directory."""
    return services.file_service


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def mock_claude_service() -> MockClaudeService:
    """Deterministic vision service: accepts photos, 90% eaten, 20% single."""
    return MockClaudeService()


@pytest.fixture
def services(
    store: InMemoryStore, upload_dir: Path, mock_claude_service: MockClaudeService
) -> Services:
    """Full service graph over the test store, with seeded activities."""
    return build_services(
        vision=mock_claude_service,
        store=store,
        upload_dir=str(upload_dir),
        seed=True,
    )


@pytest.fixture
def meal_service(services: Services):
    return services.meal_service


@pytest.fixture
def user_service(services: Services):
    return services.user_service


@pytest.fixture
def activity_service(services: Services):
    return services.activity_service


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def test_user(user_service) -> User:
    """Registered user with the default 5-day meal plan."""
    return create_user(
        user_service,
        username="testuser",
        email="testuser@example.com",
        password="testpassword123",
    )


# =============================================================================
# TestClient Fixtures
# =============================================================================


@pytest.fixture
def client(services: Services) -> Generator[TestClient, None, None]:
    """TestClient for an app built around the test's services."""
    app = create_app(services)
    with TestClient(app) as test_client:
        yield test_client
