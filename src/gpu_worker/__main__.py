"""
Run the gpu-worker HTTP service.

Usage:
    python -m gpu_worker [--host HOST] [--port PORT] [--workers N] [--log-level LEVEL]

Flags override the HOST, PORT, WORKERS and LOG_LEVEL environment variables.
"""

import argparse
import copy
import logging
import os
import sys

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from .config import LOG_LEVELS, ServerConfig

logger = logging.getLogger("gpu_worker")

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GPU blur/mirror service for animated GIFs")
    parser.add_argument("--host", help="Bind address (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: $PORT or 8080)")
    parser.add_argument("--workers", type=int, help="Worker processes (default: $WORKERS or CPU count)")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Log level (default: $LOG_LEVEL or info)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    config = ServerConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.workers = args.workers
    if args.log_level is not None:
        config.log_level = args.log_level
    return config


def log_config(level: str) -> dict:
    """uvicorn's logging config plus a gpu_worker logger in our format."""
    config = copy.deepcopy(LOGGING_CONFIG)
    config["formatters"]["gpu_worker"] = {"format": LOG_FORMAT}
    config["handlers"]["gpu_worker"] = {
        "class": "logging.StreamHandler",
        "formatter": "gpu_worker",
        "stream": "ext://sys.stderr",
    }
    config["loggers"]["gpu_worker"] = {
        "handlers": ["gpu_worker"],
        "level": level.upper(),
        "propagate": False,
    }
    return config


def main(argv=None) -> None:
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=config.log_level.upper(),
        format=LOG_FORMAT,
    )
    logger.info(
        "Listening on %s:%d with %d worker(s)", config.host, config.port, config.workers
    )

    # Workers re-import the app and build it from the environment
    os.environ["LOG_LEVEL"] = config.log_level

    uvicorn.run(
        "gpu_worker.server:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level,
        log_config=log_config(config.log_level),
    )


if __name__ == "__main__":
    main()
