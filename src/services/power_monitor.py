"""
Power Monitor Server - poll orchestration and service wiring
"""

import asyncio
import logging
import time
from typing import List, Optional

import uvicorn

# Local imports
from config_loader import load_config, setup_logging, get_credentials, get_devices
from database.manager import DatabaseManager
from api.main_api import PowerMonitorAPI
from tuya_cloud import TuyaCloudClient, TokenCache, DeviceProber, Device, Availability, Observation, CycleSummary

logger = logging.getLogger(__name__)


class NoDevicesConfigured(Exception):
    """Device enumeration produced nothing to poll"""


class PollOrchestrator:
    """Runs one probe per device concurrently, persists each observation and summarizes"""

    def __init__(self, prober: DeviceProber, db, devices: List[Device]):
        self.prober = prober
        self.db = db
        self.devices = list(devices)
        self.cycle_count = 0

    async def run_cycle(self, devices: Optional[List[Device]] = None, persist: bool = True) -> CycleSummary:
        """
        Probe every device in parallel and wait for all of them.
        Only an empty device list fails the cycle; device and storage errors are folded into results.
        """
        devices = self.devices if devices is None else list(devices)
        if not devices:
            raise NoDevicesConfigured("No devices configured for monitoring")

        cycle_start = time.monotonic()
        self.cycle_count += 1
        logger.info(f"Starting poll cycle #{self.cycle_count} for {len(devices)} devices"
                    f"{'' if persist else ' (dry run)'}")

        observations = await asyncio.gather(*[self._check_device(d, persist) for d in devices])
        summary = CycleSummary(results=list(observations))

        elapsed = time.monotonic() - cycle_start
        logger.info(f"Poll cycle #{self.cycle_count} complete in {elapsed:.1f}s: "
                    f"online={summary.online}, offline={summary.offline}")
        return summary

    async def _check_device(self, device: Device, persist: bool) -> Observation:
        try:
            observation = await self.prober.probe(device.device_id, device.name)
        except Exception as e:
            logger.error(f"Device check failed for {device.name}: {e}")
            observation = Observation(device.device_id, device.name, Availability.unreachable(str(e)))

        if persist:
            await self._persist(observation)

        power_info = f" {observation.power_consumption_w:.2f}W" if observation.power_consumption_w is not None else ""
        latency_info = f" ({observation.response_time_ms}ms)" if observation.response_time_ms is not None else ""
        if observation.is_online:
            logger.info(f"{device.name}: online (power present){power_info}{latency_info}")
        else:
            logger.info(f"{device.name}: offline (no power) - {observation.error}")
        return observation

    async def _persist(self, observation: Observation):
        """Best-effort insert; a storage failure never changes the reported verdict"""
        try:
            await self.db.save_power_status(
                observation.device_id,
                observation.device_name,
                observation.is_online,
                observation.response_time_ms,
                observation.power_consumption_w,
                observation.error,
                voltage_v=observation.voltage_v,
                ts=observation.ts
            )
        except Exception as e:
            logger.error(f"Failed to store observation for {observation.device_name}: {e}")


class PowerMonitorServer:
    """Main server wiring configuration, storage, Tuya cloud access and the HTTP API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        tuya_config = self.config['tuya']
        self.devices = get_devices(self.config)

        self.db = DatabaseManager(self.config)
        self.client = TuyaCloudClient(
            get_credentials(self.config),
            tuya_config['api_url'],
            auth_failure_codes=tuya_config['auth_failure_codes'],
            rate_limit_codes=tuya_config['rate_limit_codes'],
            ssl_verify=tuya_config['ssl_verify'],
            ca_cert_path=tuya_config['ca_cert_path']
        )
        self.token_cache = TokenCache(
            self.client,
            safety_margin_seconds=tuya_config['token_safety_margin_seconds'],
            fetch_timeout=tuya_config['token_timeout_seconds']
        )
        self.prober = DeviceProber(
            self.client,
            self.token_cache,
            metadata_timeout=tuya_config['metadata_timeout_seconds'],
            status_timeout=tuya_config['status_timeout_seconds']
        )
        self.orchestrator = PollOrchestrator(self.prober, self.db, self.devices)

        self.api = PowerMonitorAPI(self.orchestrator, self.db, self.token_cache, self.config)

    async def initialize(self):
        """Open storage; the cloud session is created lazily on the first request"""
        logger.info("Starting Tuya Power Monitor...")
        await self.db.initialize()
        logger.info(f"Database initialized, monitoring {len(self.devices)} devices: "
                    f"{', '.join(d.name for d in self.devices) or 'none'}")

    async def start(self):
        """Initialize services and serve the HTTP API until shutdown"""
        try:
            await self.initialize()
            await self._start_api_server()
        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        logger.info("Stopping server...")
        await self.client.close()
        await self.db.close()
        logger.info("Server stopped")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # Requests are logged by our middleware
        )

        server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info("Poll trigger: POST /monitor (call once per minute from the scheduler)")

        await server.serve()
