"""
Tuya Power Monitor - Main Entry Point
"""

import asyncio
import sys
import logging
import os

from services.power_monitor import PowerMonitorServer

logger = logging.getLogger(__name__)

async def main():
    """Main entry point"""

    # uvicorn handles SIGINT/SIGTERM and returns from serve(); cleanup runs in finally
    server = None

    try:
        # Get config file path from environment variable or use default
        config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
        logger.info(f"Using configuration file name from environment: {config_path}")
        # Create and start server
        server = PowerMonitorServer(config_path=config_path)

        await server.start()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if server:
            await server.stop()

    return 0

if __name__ == "__main__":
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
