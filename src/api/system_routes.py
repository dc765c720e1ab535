"""
System health and service information API routes
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# Response models
class DeviceResponse(BaseModel):
    device_id: str
    name: str
    last_seen: Optional[datetime] = None
    is_online: Optional[bool] = None
    power_consumption_w: Optional[float] = None
    voltage_v: Optional[float] = None
    last_error: Optional[str] = None

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    token: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

def create_system_routes(db_manager, token_cache, orchestrator, version: str):
    """Create system monitoring routes"""
    router = APIRouter(tags=["system"])

    @router.get("/health", response_model=HealthResponse)
    async def system_health():
        """Service health: database reachability and token state"""
        try:
            db_connected = await db_manager.test_connection()
            return HealthResponse(
                status="ok",
                timestamp=datetime.now(timezone.utc),
                database="connected" if db_connected else "disconnected",
                token=token_cache.status()
            )
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(status_code=500, content={"status": "error", "error": str(e)})

    @router.get("/")
    async def service_info():
        """Service description and endpoint map"""
        return {
            "service": "Tuya Power Monitor",
            "version": version,
            "endpoints": {
                "monitor": "POST /monitor - Check plug availability and store results (for the scheduler)",
                "check": "GET /monitor - Check plug availability without storing",
                "devices": "GET /api/devices - Configured devices with their last observation",
                "health": "GET /health - Service health"
            }
        }

    @router.get("/api/devices", response_model=list[DeviceResponse])
    async def list_devices():
        """Configured devices joined with their latest stored observation"""
        latest = {r.device_id: r for r in await db_manager.get_latest_status()}

        devices = []
        for device in orchestrator.devices:
            record = latest.get(device.device_id)
            devices.append(DeviceResponse(
                device_id=device.device_id,
                name=device.name,
                last_seen=record.ts if record else None,
                is_online=record.is_online if record else None,
                power_consumption_w=record.power_consumption_w if record else None,
                voltage_v=record.voltage_v if record else None,
                last_error=record.error_message if record else None
            ))
        return devices

    return router
