"""Fixtures for gateway tests against the FastAPI app."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.dependencies.services import get_container_manager
from src.main import app


@pytest.fixture
def client(manager):
    """Test client whose app uses the mocked lifecycle manager.

    The client is entered as a context manager so every request and
    socket runs on the same event loop as the lifespan.
    """
    app.dependency_overrides[get_container_manager] = lambda: manager
    with patch("src.main.get_container_manager", return_value=manager):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()
