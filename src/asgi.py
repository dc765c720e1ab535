"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line:
    uvicorn asgi:app --app-dir src --port 8080
"""

import logging
import os
from contextlib import asynccontextmanager

from services.power_monitor import PowerMonitorServer

# Build all components (config, logging, storage, cloud client, API)
server = PowerMonitorServer(config_path=os.environ.get('CONFIG_FILE', 'config/config.yaml'))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    """Open the database on startup, release connections on shutdown"""
    logger.info("Starting up application...")
    await server.initialize()
    yield
    logger.info("Shutting down application...")
    await server.stop()
    logger.info("Application shut down complete")


# Expose the FastAPI app for uvicorn
app = server.api.app
app.router.lifespan_context = lifespan

logger.info("ASGI app ready for uvicorn")
