"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
import socket
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import json

from dotenv import find_dotenv, load_dotenv

from .discovery import (
    ANNOUNCE_INTERVAL, BUFFER_SIZE, DELIMITER, DISCOVERY_PORT, MAX_PORT,
)

# Verbosity levels, in the order of the numeric -log values (0, 1, 2)
LOG_LEVELS = ('DEBUG', 'INFO', 'ERROR')


def normalize_log_level(value) -> str:
    """
    Turn a level name or its numeric form (0=DEBUG, 1=INFO, 2=ERROR) into a
    level name.
    """
    text = str(value).strip().upper()
    if text in LOG_LEVELS:
        return text
    if text.isdigit() and int(text) < len(LOG_LEVELS):
        return LOG_LEVELS[int(text)]
    raise ValueError(f"Invalid log level: {value!r} "
                     f"(expected one of {', '.join(LOG_LEVELS)} or 0-2)")


def validate_display_name(name: str) -> str:
    """Reject names that cannot be carried in a discovery announcement."""
    if not name:
        raise ValueError("Display name must not be empty")
    if DELIMITER in name:
        raise ValueError(f"Display name must not contain '{DELIMITER}'")
    return name


def validate_port(value, name: str = 'port') -> int:
    """Parse a TCP/UDP port, rejecting values outside 0-65535."""
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {name}: {value!r}")
    if not 0 <= port <= MAX_PORT:
        raise ValueError(f"Invalid {name}: {port} (expected 0-{MAX_PORT})")
    return port


def default_display_name() -> str:
    return socket.gethostname()


@dataclass
class Config:
    """
    Gabby Node Configuration.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (GABBY_*)
    3. Config file (JSON)
    4. Default values
    """
    # Identity
    display_name: str = field(default_factory=default_display_name)

    # Messaging (TCP)
    port: int = 8080

    # Discovery (UDP)
    discovery_port: int = DISCOVERY_PORT
    announce_interval: float = ANNOUNCE_INTERVAL
    buffer_size: int = BUFFER_SIZE

    # Used to find our outward-facing address; nothing is sent to it
    route_host: str = '8.8.8.8'
    route_port: int = 80

    # Logging
    log_level: str = 'DEBUG'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        config.display_name = os.getenv('GABBY_NAME', config.display_name)
        config.port = validate_port(
            os.getenv('GABBY_PORT', config.port), 'GABBY_PORT'
        )
        config.discovery_port = validate_port(
            os.getenv('GABBY_DISCOVERY_PORT', config.discovery_port),
            'GABBY_DISCOVERY_PORT'
        )
        interval = os.getenv('GABBY_ANNOUNCE_INTERVAL', config.announce_interval)
        try:
            config.announce_interval = float(interval)
        except ValueError:
            raise ValueError(f"Invalid GABBY_ANNOUNCE_INTERVAL: {interval!r}")
        config.log_level = normalize_log_level(
            os.getenv('GABBY_LOG_LEVEL', config.log_level)
        )

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        config.display_name = data.get('display_name', config.display_name)
        config.port = validate_port(data.get('port', config.port))

        config.discovery_port = validate_port(
            data.get('discovery_port', config.discovery_port), 'discovery_port'
        )
        config.announce_interval = data.get(
            'announce_interval', config.announce_interval
        )
        config.buffer_size = data.get('buffer_size', config.buffer_size)
        config.route_host = data.get('route_host', config.route_host)
        config.route_port = data.get('route_port', config.route_port)

        config.log_level = normalize_log_level(
            data.get('log_level', config.log_level)
        )

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'display_name': self.display_name,
            'port': self.port,
            'discovery_port': self.discovery_port,
            'announce_interval': self.announce_interval,
            'buffer_size': self.buffer_size,
            'route_host': self.route_host,
            'route_port': self.route_port,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    config = Config()

    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for key in ['display_name', 'port', 'discovery_port',
                'announce_interval', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config

