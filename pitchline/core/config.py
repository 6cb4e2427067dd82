"""Configuration management for Pitchline.

This module provides configuration constants and the :class:`AppConfig` class
which merges defaults with values from an optional YAML file
(``.pitchline.yml`` in the working directory).

Recording constants
-------------------
- ``RECORDING_TIME_LIMIT_MS`` – hard ceiling on one session (60 000 ms)
- ``REFRESH_INTERVAL_MS``     – sampling tick (100 ms, ten samples per second)
- ``ELAPSED_INTERVAL_MS``     – elapsed-time display tick (1000 ms)
- ``MAX_DATA_POINTS``         – sample window capacity (60 s * 10 samples/s)

Calibration
-----------
``MIN_DB`` / ``MAX_DB`` bound the dynamic range used to normalize metering
values.  They are fixed and cannot be overridden from the YAML file.

Configuration file (``recording:`` section)
-------------------------------------------
.. code-block:: yaml

    recording:
      time_limit_ms: 30000
      refresh_interval_ms: 100
      elapsed_interval_ms: 1000
      max_data_points: 300
      device_id: 2
      profile: low
"""

from pathlib import Path
from typing import Any, Dict

import yaml

RECORDING_TIME_LIMIT_MS = 60000  # 60 seconds
REFRESH_INTERVAL_MS = 100
ELAPSED_INTERVAL_MS = 1000
MAX_DATA_POINTS = 600  # 60 seconds * 10 data points per second

MIN_DB = -60.0
MAX_DB = -10.0

# Floor reported by the PyAudio backend for digital silence
SILENCE_DB = -160.0

DEFAULT_PROFILE = 'high'
CONFIG_FILE = '.pitchline.yml'


class AppConfig:
    """Application configuration management."""

    def __init__(self) -> None:
        """Initialize configuration with defaults."""
        self._config: Dict[str, Any] = {
            'time_limit_ms': RECORDING_TIME_LIMIT_MS,
            'refresh_interval_ms': REFRESH_INTERVAL_MS,
            'elapsed_interval_ms': ELAPSED_INTERVAL_MS,
            'max_data_points': MAX_DATA_POINTS,
            'device_id': None,
            'profile': DEFAULT_PROFILE,
        }
        self._load_yaml_config()

    def _load_yaml_config(self) -> None:
        """Load optional YAML configuration from the working directory."""
        config_path = Path.cwd() / CONFIG_FILE
        if not config_path.exists():
            return

        content = yaml.safe_load(config_path.read_text(encoding='utf-8'))
        if not content:
            return

        if not isinstance(content, dict):
            raise ValueError(f"Configuration in {CONFIG_FILE} must be a mapping")

        recording_config = content.get('recording')
        if recording_config is None:
            return
        if not isinstance(recording_config, dict):
            raise ValueError(f"'recording' section in {CONFIG_FILE} must be a mapping")

        for key in self._config.keys():
            if key in recording_config:
                self._config[key] = recording_config[key]

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self._config[key] = value

    def timing(self) -> Dict[str, int]:
        """Return the controller timing settings as integers.

        Raises:
            ValueError: If any interval or the capacity is not positive
        """
        timing = {
            key: int(self._config[key])
            for key in ('time_limit_ms', 'refresh_interval_ms', 'elapsed_interval_ms', 'max_data_points')
        }
        for key, value in timing.items():
            if value <= 0:
                raise ValueError(f"'{key}' must be positive, got {value}")
        return timing
