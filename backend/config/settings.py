"""
Configuration Management for Autoheal
Centralizes all environment-based configuration and logging setup
"""

import logging
import os
from typing import List, Optional

from pydantic import ValidationError

from models.settings_models import HealerConfig, endpoint_from_target


logger = logging.getLogger(__name__)

# Finer than DEBUG, used for notification outcomes
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

DEFAULT_DOCKER_SOCK = '/var/run/docker.sock'


class ConfigurationError(Exception):
    """Startup configuration is invalid, the daemon cannot run."""


def setup_logging(level_name: Optional[str] = None):
    """Configure console logging for the daemon"""
    level_name = (level_name or os.getenv('AUTOHEAL_LOG_LEVEL', 'INFO')).upper()
    level = logging.getLevelName(level_name)
    unknown_level = not isinstance(level, int)
    if unknown_level:
        level = logging.INFO

    root_logger = logging.getLogger()

    # Close and clear any existing handlers so our configuration is the only one
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO, one per poll
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if unknown_level:
        logger.warning(f"Unknown log level {level_name}, using INFO")


def _get_optional(name: str) -> Optional[str]:
    """Read an optional variable, treating empty values as unset"""
    value = os.getenv(name)
    if value is None or not value.strip():
        logger.info(f"{name} not set")
        return None
    value = value.strip()
    logger.info(f"{name} set to {value}")
    return value


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        logger.info(f"{name} not set, defaulting to {default}")
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"Could not parse {name}={raw!r} as an integer")
    logger.info(f"{name} set to {value}")
    return value


def _get_list(name: str) -> List[str]:
    """Comma-separated list, entries trimmed, empty entries dropped"""
    raw = _get_optional(name)
    if raw is None:
        return []
    return [item.strip() for item in raw.split(',') if item.strip()]


def _get_timeout_milliseconds() -> int:
    """AUTOHEAL_TIMEOUT_MS wins over the legacy CURL_TIMEOUT (seconds)"""
    if os.getenv('AUTOHEAL_TIMEOUT_MS', '').strip():
        return _get_int('AUTOHEAL_TIMEOUT_MS', 30000)
    return _get_int('CURL_TIMEOUT', 30) * 1000


def load_config() -> HealerConfig:
    """
    Build the healer configuration from the environment.

    Returns:
        Validated HealerConfig

    Raises:
        ConfigurationError: A variable is malformed or out of range
    """
    docker_sock = os.getenv('DOCKER_SOCK', '').strip() or DEFAULT_DOCKER_SOCK
    logger.info(f"DOCKER_SOCK set to {docker_sock}")

    try:
        endpoint = endpoint_from_target(
            docker_sock,
            ca_cert=_get_optional('DOCKER_CACERT'),
            client_cert=_get_optional('DOCKER_CLIENT_CERT'),
            client_key=_get_optional('DOCKER_CLIENT_KEY'),
        )
        return HealerConfig(
            endpoint=endpoint,
            timeout_milliseconds=_get_timeout_milliseconds(),
            container_label=_get_optional('AUTOHEAL_CONTAINER_LABEL'),
            default_stop_timeout=_get_int('AUTOHEAL_DEFAULT_STOP_TIMEOUT', 10),
            interval=_get_int('AUTOHEAL_INTERVAL', 5),
            start_period=_get_int('AUTOHEAL_START_PERIOD', 0),
            exclude_containers=_get_list('AUTOHEAL_EXCLUDE_CONTAINERS'),
            webhook_url=_get_optional('WEBHOOK_URL'),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
