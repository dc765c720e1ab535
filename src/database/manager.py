"""
Database manager for PostgreSQL operations
"""

import asyncpg
import logging
from datetime import datetime, timezone
from typing import List, Dict, Optional

from .models import PowerStatusRecord

logger = logging.getLogger(__name__)

class DatabaseManager:
    """Manages PostgreSQL storage of device power observations"""

    def __init__(self, config: Dict):
        self.config = config
        self.pool = None
        self.db_host = config['database']['host']
        self.db_port = config['database']['port']
        self.db_name = config['database']['database']
        self.db_user = config['database']['username']
        self.db_password = config['database']['password']

    async def initialize(self):
        """Initialize database connection pool and schema"""
        try:
            # Create connection pool
            self.pool = await asyncpg.create_pool(
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
                user=self.db_user,
                password=self.db_password,
                min_size=1,
                max_size=10,
                command_timeout=10
            )

            logger.info("Database connection pool created")

            # Create schema if not exists
            await self.create_schema()
            logger.info("Database schema initialized")

        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    async def create_schema(self):
        """Create the power_status table if it doesn't exist"""
        schema_sql = """
        -- One row per device per poll cycle (append-only)
        CREATE TABLE IF NOT EXISTS power_status (
            id BIGSERIAL PRIMARY KEY,
            ts TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            device_id VARCHAR(50) NOT NULL,
            device_name VARCHAR(100),
            is_online BOOLEAN NOT NULL DEFAULT false,
            response_time_ms INTEGER,
            power_consumption_w NUMERIC(10, 2),
            voltage_v NUMERIC(5, 2),
            error_message TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_power_status_ts
        ON power_status(ts);

        CREATE INDEX IF NOT EXISTS idx_power_status_device_ts
        ON power_status(device_id, ts DESC);

        -- Older deployments were created before voltage tracking
        ALTER TABLE power_status ADD COLUMN IF NOT EXISTS voltage_v NUMERIC(5, 2);
        """

        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)

    async def save_power_status(self, device_id: str, device_name: Optional[str], is_online: bool,
                                response_time_ms: Optional[int] = None,
                                power_consumption_w: Optional[float] = None,
                                error_message: Optional[str] = None,
                                voltage_v: Optional[float] = None,
                                ts: Optional[datetime] = None) -> int:
        """
        Append one observation; returns the new row id
        ts is the probe time; defaults to now
        Raises on failure - callers decide whether a lost row matters
        """
        if not is_online:
            # Offline rows never carry telemetry
            power_consumption_w = None
            voltage_v = None

        if ts is None:
            ts = datetime.now(timezone.utc)

        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("""
                    INSERT INTO power_status (
                        ts, device_id, device_name, is_online, response_time_ms,
                        power_consumption_w, voltage_v, error_message
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    RETURNING id
                """,
                ts, device_id, device_name, is_online, response_time_ms,
                power_consumption_w, voltage_v, error_message
                )
        except Exception as e:
            logger.error(f"Failed to save power status for {device_id}: {e}")
            raise

    async def get_latest_status(self) -> List[PowerStatusRecord]:
        """Most recent observation for every device"""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT DISTINCT ON (device_id)
                           id, ts, device_id, device_name, is_online, response_time_ms,
                           power_consumption_w, voltage_v, error_message
                    FROM power_status
                    ORDER BY device_id, ts DESC
                """)

                return [PowerStatusRecord(
                    id=row['id'],
                    device_id=row['device_id'],
                    device_name=row['device_name'],
                    ts=row['ts'],
                    is_online=row['is_online'],
                    response_time_ms=row['response_time_ms'],
                    power_consumption_w=float(row['power_consumption_w']) if row['power_consumption_w'] is not None else None,
                    voltage_v=float(row['voltage_v']) if row['voltage_v'] is not None else None,
                    error_message=row['error_message']
                ) for row in rows]

        except Exception as e:
            logger.error(f"Failed to get latest status: {e}")
            return []

    async def test_connection(self) -> bool:
        """Run SELECT 1 against the pool"""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database connection pool closed")
