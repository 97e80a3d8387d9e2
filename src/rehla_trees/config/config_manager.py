"""
Configuration manager that loads field-client settings from environment variables.
"""

import os
from typing import Any, Dict, Optional
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path('.env')
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_EXPECTED_QR_DOMAIN = 'rehla-trees-planting.com'


class ConfigManager:
    """Configuration manager for environment variables."""

    def __init__(self) -> None:
        self._config: Dict[str, Any] = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        return {
            # CMS
            'api_url': os.getenv('API_URL', 'http://localhost:1337').rstrip('/'),
            'api_timeout': int(os.getenv('API_TIMEOUT', '30')),
            'session_file': os.getenv('SESSION_FILE', '.rehla_session.json'),

            # QR payloads
            'expected_qr_domain': os.getenv('EXPECTED_QR_DOMAIN', DEFAULT_EXPECTED_QR_DOMAIN).lower(),

            # Camera
            'camera_device': os.getenv('CAMERA_DEVICE', ''),
            'camera_max_index': int(os.getenv('CAMERA_MAX_INDEX', '10')),
            'camera_width': int(os.getenv('CAMERA_WIDTH', '1280')),
            'camera_height': int(os.getenv('CAMERA_HEIGHT', '720')),
            'camera_fps': int(os.getenv('CAMERA_FPS', '30')),
            'camera_min_width': int(os.getenv('CAMERA_MIN_WIDTH', '640')),
            'camera_min_height': int(os.getenv('CAMERA_MIN_HEIGHT', '480')),

            # Scan loop
            'scan_frame_interval': float(os.getenv('SCAN_FRAME_INTERVAL', '0.033')),
            'scan_max_read_failures': int(os.getenv('SCAN_MAX_READ_FAILURES', '30')),

            # Logging
            'log_level': os.getenv('LOG_LEVEL', 'INFO').upper(),
            'log_file': os.getenv('LOG_FILE', 'logs/rehla_trees.log'),
            'debug': os.getenv('DEBUG', 'false').lower() == 'true',

            # Application
            'app_version': os.getenv('APP_VERSION', '1.0.0'),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @property
    def api_url(self) -> str:
        return self.get('api_url')

    @property
    def api_timeout(self) -> int:
        return self.get('api_timeout')

    @property
    def session_file(self) -> str:
        return self.get('session_file')

    @property
    def expected_qr_domain(self) -> str:
        return self.get('expected_qr_domain')

    @property
    def camera_device(self) -> Optional[str]:
        return self.get('camera_device') or None

    @property
    def camera_max_index(self) -> int:
        return self.get('camera_max_index')

    @property
    def camera_width(self) -> int:
        return self.get('camera_width')

    @property
    def camera_height(self) -> int:
        return self.get('camera_height')

    @property
    def camera_fps(self) -> int:
        return self.get('camera_fps')

    @property
    def camera_min_width(self) -> int:
        return self.get('camera_min_width')

    @property
    def camera_min_height(self) -> int:
        return self.get('camera_min_height')

    @property
    def scan_frame_interval(self) -> float:
        return self.get('scan_frame_interval')

    @property
    def scan_max_read_failures(self) -> int:
        return self.get('scan_max_read_failures')

    @property
    def log_level(self) -> str:
        return self.get('log_level')

    @property
    def log_file(self) -> str:
        return self.get('log_file')

    @property
    def debug(self) -> bool:
        return self.get('debug')

    @property
    def app_version(self) -> str:
        return self.get('app_version')


# Global config instance
_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get global configuration manager."""
    global _config
    if _config is None:
        _config = ConfigManager()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
