"""
Configuration loader for Tuya Power Monitor
Loads and validates configuration from YAML files, with environment overrides
for credentials and the device list (container deployments)
"""

import os
import json
import yaml
import logging
from typing import Dict, Any, List
from pathlib import Path
from datetime import datetime
import pytz

from tuya_cloud.models import CloudCredentials, Device

logger = logging.getLogger(__name__)

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'TUYA_ACCESS_ID': ('tuya', 'access_id'),
    'TUYA_ACCESS_KEY': ('tuya', 'access_key'),
    'TUYA_API_URL': ('tuya', 'api_url'),
    'DB_HOST': ('database', 'host'),
    'DB_PORT': ('database', 'port'),
    'DB_NAME': ('database', 'database'),
    'DB_USER': ('database', 'username'),
    'DB_PASSWORD': ('database', 'password'),
    'PORT': ('api', 'port'),
}

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    A missing file is allowed when everything comes from the environment
    """
    try:
        config_file = Path(config_path)
        if config_file.exists():
            with open(config_file, 'r') as f:
                config = yaml.safe_load(f) or {}
        else:
            logger.warning(f"Configuration file not found: {config_path} - using environment only")
            config = {}

        _apply_env_overrides(config, os.environ)

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _apply_env_overrides(config: Dict, environ) -> None:
    """Environment variables win over the YAML file"""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value

    # DEVICE_IDS='{"Plug 1": "bf3c...", "Plug 2": "bfcb..."}'
    device_ids = environ.get('DEVICE_IDS')
    if device_ids:
        try:
            config['devices'] = json.loads(device_ids)
        except ValueError as e:
            raise ValueError(f"DEVICE_IDS is not valid JSON: {e}")

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    required_sections = ['tuya', 'database']

    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required configuration section: {section}")

    # Validate Tuya credentials
    tuya = config['tuya']
    for field in ['access_id', 'access_key']:
        if not tuya.get(field):
            raise ValueError(f"tuya.{field} is required (or set TUYA_{field.upper()})")

    # Validate database section
    db = config['database']
    required_db_fields = ['host', 'port', 'database', 'username', 'password']
    for field in required_db_fields:
        if field not in db:
            raise ValueError(f"Missing required database field: {field}")

    # Devices may be empty here; an empty list fails the poll cycle, not startup
    devices = config.get('devices')
    if devices is not None and not isinstance(devices, (dict, list)):
        raise ValueError("devices must be a mapping of name -> id or a list of {id, name}")
    if not devices:
        logger.warning("No devices configured - poll cycles will fail until devices are added")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Tuya defaults
    tuya_defaults = {
        'api_url': 'https://openapi.tuyaeu.com',
        'token_timeout_seconds': 10,
        'metadata_timeout_seconds': 5,
        'status_timeout_seconds': 15,
        'token_safety_margin_seconds': 300,
        'auth_failure_codes': [1010, 1011],
        'rate_limit_codes': [40000309],
        'ssl_verify': True,
        'ca_cert_path': None
    }
    for key, default_value in tuya_defaults.items():
        if key not in config['tuya']:
            config['tuya'][key] = default_value

    if 'devices' not in config or config['devices'] is None:
        config['devices'] = {}

    config['database']['port'] = int(config['database']['port'])

    # API defaults
    if 'api' not in config:
        config['api'] = {}
    api_defaults = {
        'host': '0.0.0.0',
        'port': 8080,
        'cors_origins': ['*']
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value
    config['api']['port'] = int(config['api']['port'])

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/power_monitor.log',
        'console_output': True,
        'timezone': 'Europe/Kyiv'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config

def get_credentials(config: Dict) -> CloudCredentials:
    """Credential pair from the tuya section"""
    return CloudCredentials(
        access_id=str(config['tuya']['access_id']),
        access_key=str(config['tuya']['access_key'])
    )

def get_devices(config: Dict) -> List[Device]:
    """Configured devices, from either {name: id} or [{id, name}]"""
    devices = config.get('devices') or {}

    if isinstance(devices, dict):
        return [Device(device_id=str(device_id), name=str(name)) for name, device_id in devices.items()]

    result = []
    for entry in devices:
        if not isinstance(entry, dict) or not entry.get('id'):
            raise ValueError(f"Invalid device entry: {entry}")
        result.append(Device(device_id=str(entry['id']), name=str(entry.get('name') or entry['id'])))
    return result


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in the site timezone"""

    def __init__(self, fmt=None, tz_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS EET
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with site-local timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    tz_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, tz_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={tz_name}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "tuya": {
            "access_id": "your-access-id",
            "access_key": "your-access-key",
            "api_url": "https://openapi.tuyaeu.com",
            "token_timeout_seconds": 10,
            "metadata_timeout_seconds": 5,
            "status_timeout_seconds": 15,
            "token_safety_margin_seconds": 300,
            "auth_failure_codes": [1010, 1011],
            "rate_limit_codes": [40000309]
        },
        "devices": {
            "Plug 1": "bf3c70a960958bcf11ruml",
            "Plug 2": "bfcbd371e1af7827f9sj79"
        },
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "power_monitor",
            "username": "postgres",
            "password": "postgres"
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8080,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/power_monitor.log",
            "console_output": True,
            "timezone": "Europe/Kyiv"
        }
    }
