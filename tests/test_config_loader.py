"""
Unit tests for configuration loading.
"""
import logging

import pytest
import yaml

from config_loader import (
    ENV_OVERRIDES, TimezoneFormatter, get_credentials, get_devices, get_sample_config, load_config
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config tests."""
    for name in list(ENV_OVERRIDES) + ['DEVICE_IDS']:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    def write(data):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)
    return write


class TestLoadConfig:
    """Test YAML loading, validation and defaults."""

    def test_sample_config_loads(self, config_file):
        config = load_config(config_file(get_sample_config()))
        assert config['tuya']['api_url'] == "https://openapi.tuyaeu.com"
        assert config['database']['port'] == 5432

    def test_defaults_applied(self, config_file):
        data = get_sample_config()
        data['tuya'] = {"access_id": "id", "access_key": "key"}
        del data['api']
        del data['logging']

        config = load_config(config_file(data))

        assert config['tuya']['metadata_timeout_seconds'] == 5
        assert config['tuya']['status_timeout_seconds'] == 15
        assert config['tuya']['token_safety_margin_seconds'] == 300
        assert config['tuya']['auth_failure_codes'] == [1010, 1011]
        assert config['tuya']['ca_cert_path'] is None
        assert config['api']['port'] == 8080
        assert config['logging']['timezone'] == "Europe/Kyiv"

    def test_missing_credentials(self, config_file):
        data = get_sample_config()
        data['tuya'] = {"access_id": "id"}
        with pytest.raises(ValueError, match="access_key"):
            load_config(config_file(data))

    def test_missing_database_field(self, config_file):
        data = get_sample_config()
        del data['database']['password']
        with pytest.raises(ValueError, match="password"):
            load_config(config_file(data))

    def test_missing_section(self, config_file):
        data = get_sample_config()
        del data['database']
        with pytest.raises(ValueError, match="database"):
            load_config(config_file(data))

    def test_empty_devices_allowed(self, config_file):
        data = get_sample_config()
        data['devices'] = {}
        config = load_config(config_file(data))
        assert get_devices(config) == []


class TestEnvironmentOverrides:
    """Test container-style configuration."""

    def test_env_only_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv('TUYA_ACCESS_ID', 'env-id')
        monkeypatch.setenv('TUYA_ACCESS_KEY', 'env-key')
        monkeypatch.setenv('DB_HOST', 'db')
        monkeypatch.setenv('DB_PORT', '5433')
        monkeypatch.setenv('DB_NAME', 'power')
        monkeypatch.setenv('DB_USER', 'user')
        monkeypatch.setenv('DB_PASSWORD', 'pass')
        monkeypatch.setenv('PORT', '9000')
        monkeypatch.setenv('DEVICE_IDS', '{"Kitchen": "dev-k"}')

        config = load_config(str(tmp_path / "missing.yaml"))

        assert get_credentials(config).access_id == 'env-id'
        assert config['database']['port'] == 5433
        assert config['api']['port'] == 9000
        assert get_devices(config)[0].device_id == 'dev-k'

    def test_env_wins_over_file(self, config_file, monkeypatch):
        monkeypatch.setenv('TUYA_API_URL', 'https://openapi.tuyaus.com')
        config = load_config(config_file(get_sample_config()))
        assert config['tuya']['api_url'] == 'https://openapi.tuyaus.com'

    def test_invalid_device_json(self, config_file, monkeypatch):
        monkeypatch.setenv('DEVICE_IDS', '{not json')
        with pytest.raises(ValueError, match="DEVICE_IDS"):
            load_config(config_file(get_sample_config()))


class TestDevices:
    """Test device list normalization."""

    def test_mapping_form(self):
        devices = get_devices({"devices": {"Plug 1": "a", "Plug 2": "b"}})
        assert [(d.name, d.device_id) for d in devices] == [("Plug 1", "a"), ("Plug 2", "b")]

    def test_list_form(self):
        devices = get_devices({"devices": [{"id": "a", "name": "Plug 1"}, {"id": "b"}]})
        assert [(d.name, d.device_id) for d in devices] == [("Plug 1", "a"), ("b", "b")]

    def test_list_entry_without_id(self):
        with pytest.raises(ValueError):
            get_devices({"devices": [{"name": "Plug 1"}]})


class TestLogging:
    """Test the timezone-aware formatter."""

    def test_formats_in_configured_zone(self):
        formatter = TimezoneFormatter("%(asctime)s %(message)s", "Etc/GMT-2")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
        record.created = 0  # 1970-01-01 00:00 UTC
        assert formatter.formatTime(record, "%H:%M") == "02:00"
