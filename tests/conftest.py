"""
Shared pytest fixtures for the power monitor tests.

Provides fixtures for:
- Tuya credentials and a controllable clock
- Mock Tuya cloud client (AsyncMock)
- Mock database manager
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from tuya_cloud.models import CloudCredentials, Device


class FakeClock:
    """Manually advanced epoch clock for token expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def credentials():
    return CloudCredentials(access_id="test-access-id", access_key="test-secret-key")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_result():
    """Successful /v1.0/token result payload."""
    return {"access_token": "token-1", "expire_time": 7200, "refresh_token": "refresh-1", "uid": "uid-1"}


@pytest.fixture
def mock_client(token_result):
    """Mock TuyaCloudClient; configure per test."""
    client = MagicMock()
    client.fetch_token = AsyncMock(return_value=token_result)
    client.get_device = AsyncMock(return_value={"id": "dev-1", "online": True})
    client.get_device_status = AsyncMock(return_value=[
        {"code": "switch_1", "value": True},
        {"code": "cur_power", "value": 235},
        {"code": "cur_voltage", "value": 2301},
    ])
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_db():
    """Mock DatabaseManager."""
    db = MagicMock()
    db.save_power_status = AsyncMock(return_value=1)
    db.get_latest_status = AsyncMock(return_value=[])
    db.test_connection = AsyncMock(return_value=True)
    db.close = AsyncMock()
    return db


@pytest.fixture
def devices():
    return [
        Device(device_id="bf3c70a960958bcf11ruml", name="Plug 1"),
        Device(device_id="bfcbd371e1af7827f9sj79", name="Plug 2"),
    ]
