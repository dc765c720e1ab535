# HTTP Helper for Tuya cloud connections
# SSL-aware session configuration shared by the token cache and device probes

import aiohttp
import ssl
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

def create_cloud_session(
    timeout_seconds: float = 30,
    ssl_verify: bool = True,
    ca_cert_path: Optional[str] = None
) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for Tuya OpenAPI connections (always HTTPS)
    Per-request deadlines are passed on each call; timeout_seconds is only the outer bound
    """
    ssl_context = ssl.create_default_context()

    if not ssl_verify:
        # Disable SSL verification (for debugging through a proxy)
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        logger.warning("SSL verification disabled for Tuya cloud session")
    elif ca_cert_path:
        ca_path = Path(ca_cert_path)
        if ca_path.exists():
            ssl_context.load_verify_locations(ca_path)
            logger.info(f"Loaded custom CA certificate: {ca_path}")
        else:
            logger.warning(f"CA certificate not found: {ca_path}")

    connector = aiohttp.TCPConnector(
        ssl=ssl_context,
        limit=20,                   # Total connection pool limit
        limit_per_host=10,          # All requests go to one API host
        force_close=False,          # Keep connections alive between polls
        enable_cleanup_closed=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
