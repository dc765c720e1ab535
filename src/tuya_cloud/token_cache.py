"""
Bearer token cache with lazy refresh
Empty -> Valid(expires_at) -> Empty on expiry, invalidate() or auth rejection
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Any, Callable

from .exceptions import TuyaCloudError, TokenFetchFailed
from .models import BearerToken

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN_SECONDS = 300
DEFAULT_TOKEN_LIFETIME_SECONDS = 7200


class TokenCache:
    """
    Holds a single access token shared by all concurrent probes.
    At most one fetch is in flight; every caller that arrives while it runs
    shares its outcome, success or TokenFetchFailed, instead of fetching again.
    """

    def __init__(self, client, safety_margin_seconds: int = DEFAULT_SAFETY_MARGIN_SECONDS,
                 fetch_timeout: float = 10, clock: Callable[[], float] = time.time):
        self.client = client
        self.safety_margin = safety_margin_seconds
        self.fetch_timeout = fetch_timeout
        self._clock = clock
        self._token: Optional[BearerToken] = None
        self._inflight: Optional[asyncio.Task] = None

        # Stats for the health endpoint
        self.fetch_count = 0
        self.fetch_failures = 0
        self.last_error: Optional[str] = None

    @property
    def expires_at(self) -> Optional[float]:
        return self._token.expires_at if self._token else None

    def is_valid(self, now: Optional[float] = None) -> bool:
        if self._token is None:
            return False
        return self._token.is_valid(self._clock() if now is None else now)

    def invalidate(self, rejected_token: Optional[str] = None):
        """
        Drop the cached token; next get_token() fetches a new one.
        With rejected_token, only drop it if it is still the cached value, so a token
        another probe has just refreshed survives a late rejection of the old one.
        """
        if self._token is None:
            return
        if rejected_token is not None and rejected_token != self._token.value:
            logger.debug("Rejected token already replaced, keeping current token")
            return
        logger.info("Access token invalidated")
        self._token = None

    async def get_token(self, force_refresh: bool = False) -> str:
        if self._inflight is None:
            if not force_refresh and self.is_valid():
                return self._token.value
            self._inflight = asyncio.ensure_future(self._refresh())
        # Shielded so one cancelled caller does not abort the fetch for the others
        token = await asyncio.shield(self._inflight)
        return token.value

    async def _refresh(self) -> BearerToken:
        try:
            return await self._fetch()
        finally:
            self._inflight = None

    async def _fetch(self) -> BearerToken:
        logger.info("Requesting new Tuya access token...")
        self._token = None
        self.fetch_count += 1
        try:
            result = await self.client.fetch_token(timeout=self.fetch_timeout)
            token = self._parse(result)
        except TuyaCloudError as e:
            self.fetch_failures += 1
            self.last_error = e.reason
            logger.error(f"Failed to get Tuya access token: {e.reason}")
            raise TokenFetchFailed(f"Failed to get access token: {e.reason}") from e

        self._token = token
        self.last_error = None
        logger.info(f"Tuya access token obtained (lifetime {token.lifetime_seconds}s)")
        return token

    def _parse(self, result: Any) -> BearerToken:
        if not isinstance(result, dict) or not result.get('access_token'):
            raise TokenFetchFailed("Token response has no access_token")

        try:
            lifetime = int(result.get('expire_time', DEFAULT_TOKEN_LIFETIME_SECONDS))
        except (TypeError, ValueError):
            lifetime = DEFAULT_TOKEN_LIFETIME_SECONDS

        return BearerToken(
            value=result['access_token'],
            expires_at=self._clock() + lifetime - self.safety_margin,
            lifetime_seconds=lifetime
        )

    def status(self) -> Dict[str, Any]:
        """Token state without the token value"""
        expires_at = self.expires_at
        return {
            "valid": self.is_valid(),
            "expires_at": datetime.fromtimestamp(expires_at, tz=timezone.utc).isoformat() if expires_at else None,
            "fetch_count": self.fetch_count,
            "fetch_failures": self.fetch_failures,
            "last_error": self.last_error,
        }
