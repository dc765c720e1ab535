"""
Unit tests for TuyaCloudClient.

Tests signed requests, envelope parsing and error classification.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from tuya_cloud.client import TuyaCloudClient
from tuya_cloud.exceptions import (
    AuthRejected, CloudConnectionError, NetworkTimeout, ProviderError, RateLimited
)


def make_session(payload=None, status=200, json_error=None):
    """Mock aiohttp session whose request() yields a response with the given JSON."""
    response = MagicMock()
    response.status = status
    if json_error:
        response.json = AsyncMock(side_effect=json_error)
    else:
        response.json = AsyncMock(return_value=payload)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.request = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


@pytest.fixture
def client_factory(credentials):
    def factory(session):
        return TuyaCloudClient(credentials, "https://openapi.example.com/", session=session)
    return factory


class TestRequest:
    """Test successful requests."""

    @pytest.mark.asyncio
    async def test_returns_result(self, client_factory):
        session = make_session({"success": True, "result": {"online": True}})
        client = client_factory(session)

        result = await client.get_device("dev-1", "tok", timeout=5)

        assert result == {"online": True}
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://openapi.example.com/v1.0/devices/dev-1"

    @pytest.mark.asyncio
    async def test_sends_signed_headers_with_token(self, client_factory):
        session = make_session({"success": True, "result": []})
        client = client_factory(session)

        await client.get_device_status("dev-1", "tok")

        headers = session.request.call_args.kwargs["headers"]
        assert headers["client_id"] == "test-access-id"
        assert headers["access_token"] == "tok"
        assert headers["sign_method"] == "HMAC-SHA256"
        assert len(headers["sign"]) == 64

    @pytest.mark.asyncio
    async def test_fetch_token_has_no_access_token_header(self, client_factory):
        session = make_session({"success": True, "result": {"access_token": "a", "expire_time": 7200}})
        client = client_factory(session)

        result = await client.fetch_token(timeout=10)

        assert result["access_token"] == "a"
        kwargs = session.request.call_args.kwargs
        assert "access_token" not in kwargs["headers"]
        assert kwargs["params"] == {"grant_type": 1}
        assert kwargs["timeout"].total == 10


class TestEnvelopeErrors:
    """Test non-success envelopes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [1010, 1011])
    async def test_auth_codes_raise_auth_rejected(self, client_factory, code):
        client = client_factory(make_session({"success": False, "code": code, "msg": "token invalid"}))
        with pytest.raises(AuthRejected) as exc_info:
            await client.get_device_status("dev-1", "tok")
        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_rate_limit_code(self, client_factory):
        client = client_factory(make_session({"success": False, "code": 40000309, "msg": "too frequent"}))
        with pytest.raises(RateLimited):
            await client.get_device_status("dev-1", "tok")

    @pytest.mark.asyncio
    async def test_other_code_raises_provider_error_with_message(self, client_factory):
        client = client_factory(make_session({"success": False, "code": 2008, "msg": "device is offline"}))
        with pytest.raises(ProviderError) as exc_info:
            await client.get_device_status("dev-1", "tok")
        assert not isinstance(exc_info.value, (AuthRejected, RateLimited))
        assert exc_info.value.reason == "device is offline"

    @pytest.mark.asyncio
    async def test_missing_message(self, client_factory):
        client = client_factory(make_session({"success": False, "code": 500}))
        with pytest.raises(ProviderError, match="Unknown API error"):
            await client.get_device_status("dev-1", "tok")

    @pytest.mark.asyncio
    async def test_string_code_is_classified(self, client_factory):
        client = client_factory(make_session({"success": False, "code": "1010", "msg": "token invalid"}))
        with pytest.raises(AuthRejected):
            await client.get_device_status("dev-1", "tok")

    @pytest.mark.asyncio
    async def test_non_json_body(self, client_factory):
        client = client_factory(make_session(status=502, json_error=ValueError("not json")))
        with pytest.raises(ProviderError, match="HTTP 502"):
            await client.get_device_status("dev-1", "tok")

    @pytest.mark.asyncio
    async def test_non_dict_payload(self, client_factory):
        client = client_factory(make_session(["unexpected"]))
        with pytest.raises(ProviderError, match="Malformed response"):
            await client.get_device_status("dev-1", "tok")

    def test_custom_codes(self, credentials):
        client = TuyaCloudClient(credentials, "https://x", auth_failure_codes=["28841002"],
                                 rate_limit_codes=[429], session=MagicMock())
        assert client.auth_failure_codes == frozenset({28841002})
        assert client.rate_limit_codes == frozenset({429})


class TestTransportErrors:
    """Test timeouts and connection failures."""

    @pytest.mark.asyncio
    async def test_timeout(self, client_factory):
        session = make_session()
        session.request.side_effect = asyncio.TimeoutError()
        client = client_factory(session)

        with pytest.raises(NetworkTimeout) as exc_info:
            await client.get_device_status("dev-1", "tok")
        assert exc_info.value.reason == "Timeout"

    @pytest.mark.asyncio
    async def test_connection_error(self, client_factory):
        session = make_session()
        session.request.side_effect = aiohttp.ClientConnectionError("refused")
        client = client_factory(session)

        with pytest.raises(CloudConnectionError) as exc_info:
            await client.get_device_status("dev-1", "tok")
        assert exc_info.value.reason == "Connection error"

    @pytest.mark.asyncio
    async def test_other_client_error(self, client_factory):
        session = make_session()
        session.request.side_effect = aiohttp.ClientPayloadError("truncated")
        client = client_factory(session)

        with pytest.raises(ProviderError, match="truncated"):
            await client.get_device_status("dev-1", "tok")


class TestClose:
    """Test session ownership."""

    @pytest.mark.asyncio
    async def test_does_not_close_injected_session(self, client_factory):
        session = make_session()
        client = client_factory(session)
        await client.close()
        session.close.assert_not_awaited()

    def test_owned_session_uses_tls_settings(self, credentials, monkeypatch):
        created = {}

        def fake_create_cloud_session(**kwargs):
            created.update(kwargs)
            return make_session()

        monkeypatch.setattr("tuya_cloud.client.create_cloud_session", fake_create_cloud_session)
        client = TuyaCloudClient(credentials, "https://x", ca_cert_path="/etc/tuya/ca.pem")

        client._get_session()

        assert created == {"ssl_verify": True, "ca_cert_path": "/etc/tuya/ca.pem"}
