"""
Database models and data structures
"""

from typing import Optional
from dataclasses import dataclass
from datetime import datetime

@dataclass
class PowerStatusRecord:
    """Row of the power_status table"""
    device_id: str
    device_name: Optional[str]
    ts: datetime
    is_online: bool
    response_time_ms: Optional[int] = None
    power_consumption_w: Optional[float] = None
    voltage_v: Optional[float] = None
    error_message: Optional[str] = None
    id: Optional[int] = None
