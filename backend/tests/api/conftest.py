"""Fixtures for API tests."""

import uuid

import pytest
from fastapi.testclient import TestClient

from bodymap.main import app


@pytest.fixture
def client():
    """Create a test client for the FastAPI app, running its startup hooks."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def credentials():
    """A username nobody has registered yet."""
    return {"username": f"user-{uuid.uuid4().hex[:8]}", "password": "testpass123"}


@pytest.fixture
def logged_in(client, credentials):
    """Register and log in; returns the login response."""
    response = client.post("/api/auth/register", json=credentials)
    assert response.status_code == 200

    response = client.post("/api/auth/login", json=credentials)
    assert response.status_code == 200
    return response.json()
