"""
Tests for configuration loading
"""

import json
import os
import socket

import pytest

from gabby.config import (
    Config, load_config, normalize_log_level, validate_display_name,
)

ENV_VARS = [
    'GABBY_NAME', 'GABBY_PORT', 'GABBY_DISCOVERY_PORT',
    'GABBY_ANNOUNCE_INTERVAL', 'GABBY_LOG_LEVEL',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and any .env file."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


class TestDefaults:

    def test_defaults(self):
        config = Config()
        assert config.display_name == socket.gethostname()
        assert config.port == 8080
        assert config.discovery_port == 8888
        assert config.announce_interval == 5.0
        assert config.buffer_size == 1024
        assert config.log_level == 'DEBUG'


class TestLogLevel:

    @pytest.mark.parametrize("value,expected", [
        ('DEBUG', 'DEBUG'),
        ('info', 'INFO'),
        (' Error ', 'ERROR'),
        ('0', 'DEBUG'),
        (1, 'INFO'),
        ('2', 'ERROR'),
    ])
    def test_accepted(self, value, expected):
        assert normalize_log_level(value) == expected

    @pytest.mark.parametrize("value", ['WARNING', '3', '-1', ''])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            normalize_log_level(value)


class TestDisplayName:

    def test_valid(self):
        assert validate_display_name("jimmy") == "jimmy"

    def test_delimiter_rejected(self):
        with pytest.raises(ValueError):
            validate_display_name("jim;my")

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            validate_display_name("")


class TestLoading:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('GABBY_NAME', 'jimmy')
        monkeypatch.setenv('GABBY_PORT', '9000')
        monkeypatch.setenv('GABBY_LOG_LEVEL', '1')

        config = Config.from_env()

        assert config.display_name == 'jimmy'
        assert config.port == 9000
        assert config.log_level == 'INFO'

    def test_from_dotenv_file(self, tmp_path):
        (tmp_path / '.env').write_text("GABBY_DISCOVERY_PORT=9999\n")

        try:
            assert Config.from_env().discovery_port == 9999
        finally:
            os.environ.pop('GABBY_DISCOVERY_PORT', None)

    def test_from_missing_file(self, tmp_path):
        assert Config.from_file(tmp_path / 'missing.json') == Config()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / 'gabby.json'
        config = Config(display_name='sally', port=9100, log_level='ERROR')
        config.save(path)

        assert json.loads(path.read_text())['display_name'] == 'sally'
        assert Config.from_file(path) == config

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / 'gabby.json'
        path.write_text(json.dumps({'display_name': 'sally', 'port': 9100}))
        monkeypatch.setenv('GABBY_PORT', '9200')

        config = load_config(path)

        assert config.display_name == 'sally'
        assert config.port == 9200


class TestPortValidation:

    @pytest.mark.parametrize("value", ['70000', '-1', 'abc'])
    def test_bad_env_port_rejected(self, monkeypatch, value):
        monkeypatch.setenv('GABBY_PORT', value)
        with pytest.raises(ValueError, match="GABBY_PORT"):
            Config.from_env()

    def test_bad_env_discovery_port_rejected(self, monkeypatch):
        monkeypatch.setenv('GABBY_DISCOVERY_PORT', '65536')
        with pytest.raises(ValueError, match="GABBY_DISCOVERY_PORT"):
            Config.from_env()

    def test_bad_announce_interval_rejected(self, monkeypatch):
        monkeypatch.setenv('GABBY_ANNOUNCE_INTERVAL', 'soon')
        with pytest.raises(ValueError, match="GABBY_ANNOUNCE_INTERVAL"):
            Config.from_env()

    def test_bad_file_port_rejected(self, tmp_path):
        path = tmp_path / 'gabby.json'
        path.write_text(json.dumps({'discovery_port': 70000}))
        with pytest.raises(ValueError, match="discovery_port"):
            Config.from_file(path)

    def test_port_bounds_accepted(self, monkeypatch):
        monkeypatch.setenv('GABBY_PORT', '0')
        monkeypatch.setenv('GABBY_DISCOVERY_PORT', '65535')

        config = Config.from_env()

        assert config.port == 0
        assert config.discovery_port == 65535
