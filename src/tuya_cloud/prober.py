"""
Device prober - turns two Tuya calls (metadata + status) into one Observation
"""

import logging
import time
from typing import Dict, Optional, Any

from .client import TuyaCloudClient
from .exceptions import TuyaCloudError, AuthRejected
from .models import Availability, Observation
from .token_cache import TokenCache

logger = logging.getLogger(__name__)

POWER_CODE = "cur_power"      # tenths of a watt
VOLTAGE_CODE = "cur_voltage"  # tenths of a volt
MAX_STATUS_ATTEMPTS = 2       # first call + one retry after auth rejection


def _scaled(value: Any) -> Optional[float]:
    """Raw tenths -> units, None for missing or non-numeric values"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value / 10


def _status_map(status: Any) -> Dict[str, Any]:
    if not isinstance(status, list):
        logger.warning(f"Unexpected status payload type: {type(status).__name__}")
        return {}
    return {item['code']: item.get('value') for item in status
            if isinstance(item, dict) and 'code' in item}


class DeviceProber:
    """Checks one device; never raises, every failure becomes an offline Observation"""

    def __init__(self, client: TuyaCloudClient, token_cache: TokenCache,
                 metadata_timeout: float = 5, status_timeout: float = 15):
        self.client = client
        self.token_cache = token_cache
        self.metadata_timeout = metadata_timeout
        self.status_timeout = status_timeout

    async def probe(self, device_id: str, device_name: Optional[str] = None) -> Observation:
        device_name = device_name or device_id
        try:
            return await self._probe(device_id, device_name)
        except Exception as e:
            logger.error(f"Unexpected error probing {device_name} ({device_id}): {e}")
            return Observation(device_id, device_name, Availability.unreachable(str(e) or type(e).__name__))

    async def _probe(self, device_id: str, device_name: str) -> Observation:
        metadata = await self._fetch_metadata(device_id)

        start = time.monotonic()
        try:
            status = await self._fetch_status(device_id)
        except TuyaCloudError as e:
            logger.debug(f"Status call failed for {device_name}: {e}")
            return Observation(device_id, device_name, Availability.unreachable(e.reason))
        response_time_ms = int((time.monotonic() - start) * 1000)

        if self._metadata_online(metadata):
            availability = Availability.reachable()
        else:
            availability = Availability.unreachable("Device reported offline")

        telemetry = _status_map(status)
        return Observation(
            device_id=device_id,
            device_name=device_name,
            availability=availability,
            response_time_ms=response_time_ms,
            power_consumption_w=_scaled(telemetry.get(POWER_CODE)),
            voltage_v=_scaled(telemetry.get(VOLTAGE_CODE))
        )

    async def _fetch_metadata(self, device_id: str) -> Optional[Dict[str, Any]]:
        """Best effort - a failure here only means we fall back to the status call"""
        try:
            token = await self.token_cache.get_token()
            metadata = await self.client.get_device(device_id, token, timeout=self.metadata_timeout)
            return metadata if isinstance(metadata, dict) else None
        except TuyaCloudError as e:
            logger.debug(f"Metadata fetch failed for {device_id}: {e.reason}")
            return None

    async def _fetch_status(self, device_id: str) -> Any:
        """Status call with a single retry on a rejected token"""
        for attempt in range(MAX_STATUS_ATTEMPTS):
            token = await self.token_cache.get_token()
            try:
                return await self.client.get_device_status(device_id, token, timeout=self.status_timeout)
            except AuthRejected as e:
                if attempt + 1 >= MAX_STATUS_ATTEMPTS:
                    logger.warning(f"Token rejected again for {device_id} (code {e.code}), giving up")
                    raise
                logger.warning(f"Token rejected for {device_id} (code {e.code}), refreshing and retrying")
                self.token_cache.invalidate(rejected_token=token)

    @staticmethod
    def _metadata_online(metadata: Optional[Dict[str, Any]]) -> bool:
        """Explicit online flag when present; otherwise the successful status call decides"""
        if metadata is None:
            return True
        online = metadata.get('online')
        return online if isinstance(online, bool) else True
