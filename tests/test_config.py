"""
Tests for ServerConfig and command-line overrides.
"""

import logging
import os

import pytest

from gpu_worker.__main__ import build_config, log_config, parse_args
from gpu_worker.config import DEFAULT_MAX_DECODED_BYTES, DEFAULT_MAX_UPLOAD_BYTES, ServerConfig


class TestFromEnv:
    """Test reading configuration from the environment."""

    def test_defaults(self):
        config = ServerConfig.from_env({})
        assert config.host == '0.0.0.0'
        assert config.port == 8080
        assert config.workers == (os.cpu_count() or 1)
        assert config.log_level == 'info'
        assert config.processor_policy == 'per-request'
        assert config.request_timeout == 120.0
        assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES == 32 * 1024 * 1024
        assert config.max_decoded_bytes == DEFAULT_MAX_DECODED_BYTES == 512 * 1024 * 1024
        assert config.power_preference == 'high-performance'

    def test_reads_variables(self):
        config = ServerConfig.from_env({
            'HOST': '127.0.0.1',
            'PORT': '9000',
            'WORKERS': '2',
            'LOG_LEVEL': 'DEBUG',
            'GPU_WORKER_PROCESSOR_POLICY': 'shared',
            'GPU_WORKER_REQUEST_TIMEOUT': '2.5',
            'GPU_WORKER_MAX_UPLOAD_BYTES': '1024',
            'GPU_WORKER_MAX_DECODED_BYTES': '4096',
            'GPU_WORKER_POWER_PREFERENCE': 'low-power',
        })
        assert config.host == '127.0.0.1'
        assert config.port == 9000
        assert config.workers == 2
        assert config.log_level == 'debug'
        assert config.processor_policy == 'shared'
        assert config.request_timeout == 2.5
        assert config.max_upload_bytes == 1024
        assert config.max_decoded_bytes == 4096
        assert config.power_preference == 'low-power'

    @pytest.mark.parametrize("value", ['eighty', '', '-5', '0'])
    def test_bad_number_falls_back_to_default(self, value, caplog):
        with caplog.at_level(logging.WARNING, logger='gpu_worker.config'):
            config = ServerConfig.from_env({'PORT': value})
        assert config.port == 8080
        if value:
            assert 'PORT' in caplog.text

    @pytest.mark.parametrize("key,value", [
        ('GPU_WORKER_PROCESSOR_POLICY', 'pooled'),
        ('GPU_WORKER_POWER_PREFERENCE', 'fast'),
        ('LOG_LEVEL', 'verbose'),
    ])
    def test_bad_choice_raises(self, key, value):
        with pytest.raises(ValueError, match=value):
            ServerConfig.from_env({key: value})


class TestCommandLine:
    """Test that flags override the environment."""

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv('PORT', '9000')
        monkeypatch.setenv('HOST', '10.0.0.1')

        config = build_config(parse_args(['--port', '7000', '--log-level', 'warning']))
        assert config.port == 7000
        assert config.host == '10.0.0.1'
        assert config.log_level == 'warning'

    def test_environment_used_without_flags(self, monkeypatch):
        monkeypatch.setenv('WORKERS', '3')
        assert build_config(parse_args([])).workers == 3

    def test_log_config_adds_package_logger(self):
        config = log_config('debug')
        assert config['loggers']['gpu_worker']['level'] == 'DEBUG'
        assert 'uvicorn' in config['loggers']
