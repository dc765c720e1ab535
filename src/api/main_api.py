"""
Main FastAPI application setup
HTTP surface of the Tuya Power Monitor: poll trigger, dry-run check, device list and health
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

from .monitor_routes import create_monitor_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)

API_VERSION = "1.1.0"


class PowerMonitorAPI:
    """HTTP API wrapping the poll orchestrator"""

    def __init__(self, orchestrator, database_manager, token_cache, config: Dict):
        self.orchestrator = orchestrator
        self.db = database_manager
        self.token_cache = token_cache
        self.config = config
        self.app = FastAPI(
            title="Tuya Power Monitor",
            description="Infers mains power presence from Tuya smart-plug reachability",
            version=API_VERSION
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.get('api', {}).get('cors_origins', ['*']),
            allow_methods=["*"],
            allow_headers=["*"]
        )

        @self.app.middleware("http")
        async def log_requests(request: Request, call_next):
            logger.info(f"{request.method} {request.url.path}")
            return await call_next(request)

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        monitor_router = create_monitor_routes(self.orchestrator)
        system_router = create_system_routes(self.db, self.token_cache, self.orchestrator, API_VERSION)

        self.app.include_router(monitor_router)
        self.app.include_router(system_router)
