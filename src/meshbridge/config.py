# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the bridge.

Values come from defaults, then ``~/.meshbridge/config.yaml``, then
environment variables. CLI options are applied last by the caller.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_INFLUX_URL = "MESHBRIDGE_INFLUX_URL"
ENV_INFLUX_DATABASE = "MESHBRIDGE_INFLUX_DATABASE"
ENV_MEASUREMENT = "MESHBRIDGE_MEASUREMENT"
ENV_LINK_ADDRESS = "MESHBRIDGE_LINK_ADDRESS"
ENV_IDLE_TIMEOUT = "MESHBRIDGE_IDLE_TIMEOUT"
ENV_LOG_LEVEL = "MESHBRIDGE_LOG_LEVEL"


@dataclass
class Config:
    """Bridge configuration container."""

    # Sink settings
    influx_url: str = "http://localhost:8086"
    influx_database: str = "meshtastic"
    measurement: str = "node_info"

    # Link settings
    link_address: str = "localhost:4403"
    idle_timeout: float = 3.0

    # Logging
    log_level: str = "INFO"

    config_path: Optional[Path] = None

    def __post_init__(self):
        if self.config_path is None:
            self.config_path = Path.home() / ".meshbridge" / "config.yaml"

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

    def load_from_file(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: expected a mapping")
            return

        influx = self._section(data, "influx")
        self.influx_url = influx.get("url", self.influx_url)
        self.influx_database = influx.get("database", self.influx_database)
        self.measurement = influx.get("measurement", self.measurement)

        link = self._section(data, "link")
        self.link_address = link.get("address", self.link_address)
        self.idle_timeout = link.get("idle_timeout", self.idle_timeout)

        logging_section = self._section(data, "logging")
        self.log_level = logging_section.get("level", self.log_level)

    def _section(self, data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            logger.warning(f"Ignoring {name} section in {self.config_path}: expected a mapping")
            return {}
        return section

    def load_from_env(self):
        """Load configuration from environment variables."""
        if env_url := os.environ.get(ENV_INFLUX_URL):
            self.influx_url = env_url

        if env_database := os.environ.get(ENV_INFLUX_DATABASE):
            self.influx_database = env_database

        if env_measurement := os.environ.get(ENV_MEASUREMENT):
            self.measurement = env_measurement

        if env_address := os.environ.get(ENV_LINK_ADDRESS):
            self.link_address = env_address

        if env_timeout := os.environ.get(ENV_IDLE_TIMEOUT):
            try:
                self.idle_timeout = float(env_timeout)
            except ValueError:
                logger.warning(f"Ignoring non-numeric {ENV_IDLE_TIMEOUT}={env_timeout!r}")

        if env_level := os.environ.get(ENV_LOG_LEVEL):
            self.log_level = env_level

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "influx": {
                "url": self.influx_url,
                "database": self.influx_database,
                "measurement": self.measurement,
            },
            "link": {
                "address": self.link_address,
                "idle_timeout": self.idle_timeout,
            },
            "logging": {
                "level": self.log_level,
            },
        }

    def save_to_file(self):
        """Save current configuration to YAML file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        text_settings = {
            "influx.url": self.influx_url,
            "influx.database": self.influx_database,
            "influx.measurement": self.measurement,
            "link.address": self.link_address,
            "logging.level": self.log_level,
        }
        not_text = [key for key, value in text_settings.items() if not isinstance(value, str)]
        if not_text:
            return [f"{key} must be a string" for key in not_text]

        parsed = urlparse(self.influx_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            errors.append("influx.url must be an http:// or https:// URL")

        if not self.influx_database:
            errors.append("influx.database must not be empty")

        if not self.measurement:
            errors.append("influx.measurement must not be empty")

        host, sep, port = self.link_address.rpartition(":")
        if not self.link_address or (sep and (not host or not port.isdigit())):
            errors.append("link.address must be host or host:port")

        try:
            if float(self.idle_timeout) <= 0:
                errors.append("link.idle_timeout must be positive")
        except (TypeError, ValueError):
            errors.append("link.idle_timeout must be a number")

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}")

        return errors
