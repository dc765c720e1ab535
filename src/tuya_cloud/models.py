"""
Cloud data structures: credentials, tokens, devices and observations
"""

import time
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class CloudCredentials:
    """Access id + access key pair, loaded once at startup"""
    access_id: str
    access_key: str = field(repr=False)


@dataclass(frozen=True)
class BearerToken:
    """Access token plus the instant after which it must not be handed out"""
    value: str = field(repr=False)
    expires_at: float  # epoch seconds, safety margin already subtracted
    lifetime_seconds: int = 0

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now < self.expires_at


@dataclass(frozen=True)
class Device:
    """Monitored smart plug"""
    device_id: str
    name: str


@dataclass(frozen=True)
class Availability:
    """Tagged probe outcome: online, or offline with a reason"""
    online: bool
    reason: Optional[str] = None

    @classmethod
    def reachable(cls) -> 'Availability':
        return cls(online=True)

    @classmethod
    def unreachable(cls, reason: Optional[str] = None) -> 'Availability':
        return cls(online=False, reason=reason)


@dataclass(frozen=True)
class Observation:
    """One device reading for one poll cycle"""
    device_id: str
    device_name: str
    availability: Availability
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    response_time_ms: Optional[int] = None
    power_consumption_w: Optional[float] = None
    voltage_v: Optional[float] = None

    def __post_init__(self):
        # Offline readings never carry telemetry
        if not self.availability.online:
            object.__setattr__(self, 'power_consumption_w', None)
            object.__setattr__(self, 'voltage_v', None)

    @property
    def is_online(self) -> bool:
        return self.availability.online

    @property
    def error(self) -> Optional[str]:
        return self.availability.reason

    def to_result(self) -> Dict[str, Any]:
        """Per-device entry of the /monitor response"""
        return {
            "deviceId": self.device_id,
            "deviceName": self.device_name,
            "isOnline": self.is_online,
            "responseTimeMs": self.response_time_ms,
            "powerConsumptionW": self.power_consumption_w,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full observation, used by the dry-run check"""
        result = self.to_result()
        result.update({
            "voltageV": self.voltage_v,
            "error": self.error,
            "timestamp": self.ts.isoformat(),
        })
        return result


@dataclass
class CycleSummary:
    """Outcome of one poll cycle"""
    results: List[Observation]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def devices_checked(self) -> int:
        return len(self.results)

    @property
    def online(self) -> int:
        return sum(1 for r in self.results if r.is_online)

    @property
    def offline(self) -> int:
        return self.devices_checked - self.online

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "timestamp": self.timestamp.isoformat(),
            "devicesChecked": self.devices_checked,
            "online": self.online,
            "offline": self.offline,
            "results": [r.to_result() for r in self.results],
        }
