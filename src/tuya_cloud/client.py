"""
Signed HTTP client for the Tuya OpenAPI
Parses the {success, code, msg, result} envelope and raises the cloud error taxonomy
"""

import asyncio
import logging
from typing import Dict, Optional, Any, Iterable

import aiohttp

from http_helper import create_cloud_session
from .exceptions import (
    ProviderError, AuthRejected, RateLimited, NetworkTimeout, CloudConnectionError
)
from .models import CloudCredentials
from .signer import sign_request, build_headers

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1.0/token"
DEVICE_PATH = "/v1.0/devices/{device_id}"
DEVICE_STATUS_PATH = "/v1.0/devices/{device_id}/status"

DEFAULT_AUTH_FAILURE_CODES = (1010, 1011)  # token invalid, token expired
DEFAULT_RATE_LIMIT_CODES = (40000309,)


class TuyaCloudClient:
    """Thin signed-request layer shared by the token cache and the device prober"""

    def __init__(self, credentials: CloudCredentials, base_url: str,
                 auth_failure_codes: Iterable[int] = DEFAULT_AUTH_FAILURE_CODES,
                 rate_limit_codes: Iterable[int] = DEFAULT_RATE_LIMIT_CODES,
                 session: Optional[aiohttp.ClientSession] = None,
                 ssl_verify: bool = True,
                 ca_cert_path: Optional[str] = None):
        self.credentials = credentials
        self.base_url = base_url.rstrip('/')
        self.auth_failure_codes = frozenset(int(c) for c in auth_failure_codes)
        self.rate_limit_codes = frozenset(int(c) for c in rate_limit_codes)
        self.ssl_verify = ssl_verify
        self.ca_cert_path = ca_cert_path
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_cloud_session(ssl_verify=self.ssl_verify, ca_cert_path=self.ca_cert_path)
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if we created it"""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.info("Tuya cloud session closed")

    def _raise_for_envelope(self, path: str, payload: Any):
        if not isinstance(payload, dict):
            raise ProviderError(None, "Malformed response")
        if payload.get('success'):
            return

        code = payload.get('code')
        msg = payload.get('msg') or "Unknown API error"
        try:
            code = int(code) if code is not None else None
        except (TypeError, ValueError):
            pass

        logger.debug(f"Tuya error on {path}: code={code} msg={msg}")
        if code in self.auth_failure_codes:
            raise AuthRejected(code, msg)
        if code in self.rate_limit_codes:
            raise RateLimited(code, msg)
        raise ProviderError(code, msg)

    async def request(self, path: str, method: str = "GET",
                      query: Optional[Dict[str, Any]] = None,
                      body: Optional[Dict[str, Any]] = None,
                      token: Optional[str] = None,
                      timeout: float = 10) -> Any:
        """
        Send a signed request and return the envelope's `result`
        Raises NetworkTimeout, CloudConnectionError or a ProviderError subclass
        """
        signed = sign_request(self.credentials, path, method, query, body, token)
        headers = build_headers(self.credentials, signed, token)
        url = f"{self.base_url}{path}"
        session = self._get_session()

        try:
            async with session.request(
                method, url,
                headers=headers,
                params=query or None,
                json=body if method.upper() in ("POST", "PUT") else None,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    raise ProviderError(None, f"HTTP {response.status}")
        except asyncio.TimeoutError:
            raise NetworkTimeout(f"{method} {path} timed out after {timeout}s")
        except aiohttp.ClientConnectionError as e:
            raise CloudConnectionError(f"{method} {path}: {e}")
        except aiohttp.ClientError as e:
            raise ProviderError(None, str(e))

        self._raise_for_envelope(path, payload)
        return payload.get('result')

    async def fetch_token(self, timeout: float = 10) -> Dict[str, Any]:
        """Request a new access token (grant_type=1, simple mode)"""
        return await self.request(TOKEN_PATH, query={"grant_type": 1}, timeout=timeout)

    async def get_device(self, device_id: str, token: str, timeout: float = 5) -> Dict[str, Any]:
        return await self.request(DEVICE_PATH.format(device_id=device_id), token=token, timeout=timeout)

    async def get_device_status(self, device_id: str, token: str, timeout: float = 15) -> Any:
        return await self.request(DEVICE_STATUS_PATH.format(device_id=device_id), token=token, timeout=timeout)
