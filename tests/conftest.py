"""Shared test fixtures."""

import sys
from pathlib import Path

import pytest
import respx
from tenacity import wait_none

# Add src/ to path so tests can import porkyfarm
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from porkyfarm.core import client  # noqa: E402
from porkyfarm.data.store import FarmStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    """An empty store for a test user, persisted under tmp_path."""
    return FarmStore.open("test-user", data_dir=tmp_path)


@pytest.fixture
def demo_store(tmp_path):
    """The seeded demo store, persisted under tmp_path."""
    return FarmStore.open(data_dir=tmp_path)


@pytest.fixture
def sow(store):
    """An active breeding female in the test store."""
    return store.add_animal(
        {
            "identifier": "TR-001",
            "name": "Bella",
            "category": "breeding_female",
            "breed": "Large White",
            "birth_date": "2022-03-01",
            "weight": 180,
        }
    )


@pytest.fixture
def boar(store):
    """An active breeding male in the test store."""
    return store.add_animal(
        {"identifier": "VR-001", "name": "Thor", "category": "breeding_male", "weight": 250}
    )


@pytest.fixture
def mock_resend():
    """Mock Resend API responses."""
    with respx.mock(base_url="https://api.resend.com") as mock:
        yield mock


@pytest.fixture
def resend_key(monkeypatch):
    """Configure a Resend API key for the duration of a test."""
    monkeypatch.setattr(client.settings, "resend_api_key", "re_test_key")


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Make email retries immediate."""
    monkeypatch.setattr(client.send_email_with_retry.retry, "wait", wait_none())


@pytest.fixture
def sample_send_response():
    """Sample Resend POST /emails response."""
    return {"id": "4ef9a417-02e9-4d39-ad75-9611e0fcc33c"}
