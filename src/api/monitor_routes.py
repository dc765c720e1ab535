"""
Poll trigger API routes
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def _error_response(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(error),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


def create_monitor_routes(orchestrator):
    """Create poll trigger routes"""
    router = APIRouter(tags=["monitor"])

    @router.post("/monitor")
    async def run_monitor_cycle():
        """Run one poll cycle now and persist the results (scheduler entry point)"""
        try:
            summary = await orchestrator.run_cycle()
            return summary.to_response()
        except Exception as e:
            logger.error(f"Monitoring cycle failed: {e}")
            return _error_response(e)

    @router.get("/monitor")
    async def check_devices():
        """Probe all devices without storing anything"""
        try:
            summary = await orchestrator.run_cycle(persist=False)
            return {
                "success": True,
                "timestamp": summary.timestamp.isoformat(),
                "results": [o.to_dict() for o in summary.results]
            }
        except Exception as e:
            logger.error(f"Manual device check failed: {e}")
            return _error_response(e)

    return router
