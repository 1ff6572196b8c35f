"""
Unit tests for ServerConfig.
"""

import logging

import pytest

from userservice import __version__
from userservice.config import ServerConfig


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.max_request_size == 1024 * 1024
        assert (config.min_workers, config.max_workers) == (4, 32)
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.server_name == f"userservice/{__version__}"

    def test_defaults_validate(self):
        ServerConfig().validate()

    def test_log_level_number(self):
        assert ServerConfig(log_level="debug").log_level_number == logging.DEBUG


class TestValidate:

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 65536},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 100},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"max_request_size": 10},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()


class TestFromEnv:

    def test_no_env_gives_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "WORKERS", "TIMEOUT", "LOG_LEVEL", "LOG_FORMAT"):
            monkeypatch.delenv(f"USERSERVICE_{name}", raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("USERSERVICE_HOST", "127.0.0.1")
        monkeypatch.setenv("USERSERVICE_PORT", "9000")
        monkeypatch.setenv("USERSERVICE_WORKERS", "3")
        monkeypatch.setenv("USERSERVICE_TIMEOUT", "12.5")
        monkeypatch.setenv("USERSERVICE_LOG_LEVEL", "debug")
        monkeypatch.setenv("USERSERVICE_LOG_FORMAT", "JSON")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert (config.min_workers, config.max_workers) == (3, 6)
        assert config.timeout == 12.5
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        config.validate()

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("USERSERVICE_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
