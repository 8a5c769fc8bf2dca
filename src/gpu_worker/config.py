"""
Service configuration.

Values come from the environment; command-line flags given to
``python -m gpu_worker`` override them.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

PROCESSOR_POLICIES = ('per-request', 'shared')
POWER_PREFERENCES = ('high-performance', 'low-power')
LOG_LEVELS = ('critical', 'error', 'warning', 'info', 'debug')

DEFAULT_MAX_UPLOAD_BYTES = 32 * 1024 * 1024
# Upper bound on decoded RGBA bytes across all frames of one GIF
DEFAULT_MAX_DECODED_BYTES = 512 * 1024 * 1024


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass
class ServerConfig:
    """Configuration for the HTTP service."""

    host: str = '0.0.0.0'
    port: int = 8080
    workers: int = field(default_factory=_default_workers)
    log_level: str = 'info'
    processor_policy: str = 'per-request'   # "per-request", "shared"
    request_timeout: float = 120.0          # seconds
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_decoded_bytes: int = DEFAULT_MAX_DECODED_BYTES
    power_preference: str = 'high-performance'

    def __post_init__(self):
        self.log_level = self.log_level.lower()
        _check_choice('log_level', self.log_level, LOG_LEVELS)
        _check_choice('processor_policy', self.processor_policy, PROCESSOR_POLICIES)
        _check_choice('power_preference', self.power_preference, POWER_PREFERENCES)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """
        Build a config from environment variables.

        Numbers that fail to parse fall back to their default with a warning.

        Raises:
            ValueError: Unknown log level, processor policy or power preference
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            host=env.get('HOST', defaults.host),
            port=_env_number(env, 'PORT', int, defaults.port),
            workers=_env_number(env, 'WORKERS', int, defaults.workers),
            log_level=env.get('LOG_LEVEL', defaults.log_level),
            processor_policy=env.get('GPU_WORKER_PROCESSOR_POLICY', defaults.processor_policy),
            request_timeout=_env_number(
                env, 'GPU_WORKER_REQUEST_TIMEOUT', float, defaults.request_timeout
            ),
            max_upload_bytes=_env_number(
                env, 'GPU_WORKER_MAX_UPLOAD_BYTES', int, defaults.max_upload_bytes
            ),
            max_decoded_bytes=_env_number(
                env, 'GPU_WORKER_MAX_DECODED_BYTES', int, defaults.max_decoded_bytes
            ),
            power_preference=env.get('GPU_WORKER_POWER_PREFERENCE', defaults.power_preference),
        )


def _check_choice(name: str, value: str, choices: tuple) -> None:
    if value not in choices:
        raise ValueError(f"{name} must be one of {choices}, got {value!r}")


def _env_number(env: Mapping[str, str], key: str, kind: type, default):
    raw = env.get(key)
    if raw is None or raw == '':
        return default

    try:
        value = kind(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", key, raw, default)
        return default

    if value <= 0:
        logger.warning("%s must be positive, got %r, using default %s", key, raw, default)
        return default
    return value
