"""
GRACEFULSHUTDOWN - Configuration Management

Handles lifecycle hook manager configuration from environment variables and files.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
import yaml
import json

from gracefulshutdown.core.backoff import DEFAULT_BACKOFF
from gracefulshutdown.core.errors import ConfigurationError
from gracefulshutdown.core.shutdown import DEFAULT_PING_INTERVAL

DEFAULT_SERVE_RETRIES = 3
DEFAULT_FORWARD_RETRIES = 10


@dataclass
class LifecycleHookConfig:
    """Configuration for the lifecycle hook shutdown manager."""

    # Queue to poll for termination notices ("" disables polling)
    queue_name: str = ""

    # Lifecycle hook to listen for
    lifecycle_hook_name: str = ""

    # Heartbeat period while callbacks run, in seconds
    ping_interval: float = DEFAULT_PING_INTERVAL

    # Port for receiving forwarded notices over http (0 disables http)
    port: int = 0

    # Base delay for listener bind and forward retries, in seconds
    backoff: float = DEFAULT_BACKOFF

    # Retry ceilings; 0 means default, negative disables retries
    num_serve_retries: int = 0
    num_forward_retries: int = 0

    # Collected from instance metadata when empty
    region: str = ""
    instance_id: str = ""

    # Long-poll wait for queue receives, in seconds
    wait_time_seconds: int = 20

    # Timeout for a single forward request, in seconds
    forward_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "LifecycleHookConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - GRACEFUL_QUEUE_NAME: Queue to poll for termination notices
        - GRACEFUL_LIFECYCLE_HOOK_NAME: Lifecycle hook name
        - GRACEFUL_PING_INTERVAL: Heartbeat period (seconds)
        - GRACEFUL_PORT: Port for forwarded notices
        - GRACEFUL_BACKOFF: Retry base delay (seconds)
        - GRACEFUL_SERVE_RETRIES / GRACEFUL_FORWARD_RETRIES: Retry ceilings
        - GRACEFUL_REGION / GRACEFUL_INSTANCE_ID: Skip metadata lookup
        - GRACEFUL_WAIT_TIME_SECONDS: Queue long-poll wait
        - GRACEFUL_FORWARD_TIMEOUT: Forward request timeout (seconds)
        """
        return cls(
            queue_name=os.environ.get("GRACEFUL_QUEUE_NAME", cls.queue_name),
            lifecycle_hook_name=os.environ.get(
                "GRACEFUL_LIFECYCLE_HOOK_NAME", cls.lifecycle_hook_name
            ),
            ping_interval=float(os.environ.get("GRACEFUL_PING_INTERVAL", cls.ping_interval)),
            port=int(os.environ.get("GRACEFUL_PORT", cls.port)),
            backoff=float(os.environ.get("GRACEFUL_BACKOFF", cls.backoff)),
            num_serve_retries=int(os.environ.get("GRACEFUL_SERVE_RETRIES", cls.num_serve_retries)),
            num_forward_retries=int(
                os.environ.get("GRACEFUL_FORWARD_RETRIES", cls.num_forward_retries)
            ),
            region=os.environ.get("GRACEFUL_REGION", cls.region),
            instance_id=os.environ.get("GRACEFUL_INSTANCE_ID", cls.instance_id),
            wait_time_seconds=int(
                os.environ.get("GRACEFUL_WAIT_TIME_SECONDS", cls.wait_time_seconds)
            ),
            forward_timeout=float(
                os.environ.get("GRACEFUL_FORWARD_TIMEOUT", cls.forward_timeout)
            ),
        )

    @classmethod
    def from_file(cls, path: str) -> "LifecycleHookConfig":
        """
        Load configuration from YAML or JSON file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .json)

        Returns:
            LifecycleHookConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file format is invalid
        """
        return cls(**cls._read_file(path))

    @classmethod
    def load(cls, config_file: Optional[str] = None) -> "LifecycleHookConfig":
        """
        Load configuration with priority: file > env > defaults.

        Only keys present in the file override environment values.

        Args:
            config_file: Optional path to configuration file

        Returns:
            LifecycleHookConfig instance
        """
        config = cls.from_env()

        if config_file and os.path.exists(config_file):
            data = cls._read_file(config_file)
            file_config = cls(**data)
            for name in data:
                setattr(config, name, getattr(file_config, name))

        return config

    @staticmethod
    def _read_file(path: str) -> Dict[str, Any]:
        """Parse a YAML or JSON config file into a dict of the keys it sets."""
        if not os.path.exists(path):
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f)
            elif path.endswith(".json"):
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path}")

        return data or {}

    def clean(self) -> "LifecycleHookConfig":
        """
        Replace unset values with defaults.

        Zero values take their default; a negative retry ceiling
        (conventionally -1) means no retries at all.

        Returns:
            self, for chaining
        """
        if self.ping_interval == 0:
            self.ping_interval = DEFAULT_PING_INTERVAL
        if self.backoff == 0:
            self.backoff = DEFAULT_BACKOFF

        if self.num_serve_retries == 0:
            self.num_serve_retries = DEFAULT_SERVE_RETRIES
        elif self.num_serve_retries < 0:
            self.num_serve_retries = 0

        if self.num_forward_retries == 0:
            self.num_forward_retries = DEFAULT_FORWARD_RETRIES
        elif self.num_forward_retries < 0:
            self.num_forward_retries = 0

        return self

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.ping_interval < 0:
            raise ConfigurationError("ping_interval must not be negative")

        if self.backoff < 0:
            raise ConfigurationError("backoff must not be negative")

        if not 0 <= self.port <= 65535:
            raise ConfigurationError("port must be between 0 and 65535")

        if not 0 <= self.wait_time_seconds <= 20:
            raise ConfigurationError("wait_time_seconds must be between 0 and 20")

        if self.forward_timeout <= 0:
            raise ConfigurationError("forward_timeout must be positive")
