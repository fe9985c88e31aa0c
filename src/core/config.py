import os
import socket
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'dialer.yaml')

FAMILIES = {
    "inet": socket.AF_INET,
    "inet6": socket.AF_INET6,
}
LOG_FORMATS = ("text", "json")

ENV_PREFIX = "TCPDIAL_"


class ConfigError(ValueError):
    pass


@dataclass
class DialerConfig:
    family: str = "inet"
    log_level: str = "INFO"
    log_format: str = "text"

    def __post_init__(self):
        self.family = str(self.family).lower()
        self.log_level = str(self.log_level).upper()
        self.log_format = str(self.log_format).lower()
        if self.family not in FAMILIES:
            raise ConfigError(f"Unknown address family '{self.family}'. Expected one of: {', '.join(FAMILIES)}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"Unknown log format '{self.log_format}'. Expected one of: {', '.join(LOG_FORMATS)}")

    @property
    def socket_family(self) -> int:
        return FAMILIES[self.family]


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Dialer config file not found at {path}. Using defaults.")
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse dialer config {path}: {e}") from e

    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Dialer config {path} must be a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(DialerConfig)}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown dialer config keys: {', '.join(sorted(unknown))}")
    return {k: v for k, v in raw.items() if k in known}


def load_config(path: Optional[str] = None) -> DialerConfig:
    """
    Builds the dialer configuration.

    Defaults are overridden by the YAML file, which is overridden by
    TCPDIAL_* environment variables (a .env file is honoured).
    """
    load_dotenv()
    values = _read_yaml(path or DEFAULT_CONFIG_PATH)

    for f in fields(DialerConfig):
        env_value = os.getenv(ENV_PREFIX + f.name.upper())
        if env_value:
            values[f.name] = env_value

    config = DialerConfig(**values)
    logger.debug(f"Loaded dialer config: {config}")
    return config
