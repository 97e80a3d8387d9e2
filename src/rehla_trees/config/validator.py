"""
Configuration validator for environment variables.
"""

import os
from pathlib import Path
from typing import Dict, Any
from urllib.parse import urlsplit


class ConfigValidator:
    """Validates configuration values."""

    @staticmethod
    def validate() -> Dict[str, Any]:
        """
        Validate configuration and return errors/warnings.

        Returns:
            Dict with 'errors' and 'warnings' lists, and 'valid' boolean
        """
        errors = []
        warnings = []

        # CMS base URL
        api_url = os.getenv('API_URL', 'http://localhost:1337')
        parts = urlsplit(api_url)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            errors.append(f"Invalid API_URL '{api_url}'. Must be an http(s) URL")
        elif parts.scheme == 'http' and parts.hostname not in ('localhost', '127.0.0.1'):
            warnings.append(f"API_URL '{api_url}' is not using HTTPS")

        # Expected QR domain
        domain = os.getenv('EXPECTED_QR_DOMAIN', 'rehla-trees-planting.com')
        if not domain or '/' in domain or ':' in domain:
            errors.append(f"Invalid EXPECTED_QR_DOMAIN '{domain}'. Must be a bare host name")

        # Log level
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if log_level not in valid_levels:
            errors.append(f"Invalid LOG_LEVEL '{log_level}'. Must be one of: {', '.join(valid_levels)}")

        # Integer settings
        int_settings = {
            'API_TIMEOUT': '30',
            'CAMERA_MAX_INDEX': '10',
            'CAMERA_WIDTH': '1280',
            'CAMERA_HEIGHT': '720',
            'CAMERA_FPS': '30',
            'CAMERA_MIN_WIDTH': '640',
            'CAMERA_MIN_HEIGHT': '480',
            'SCAN_MAX_READ_FAILURES': '30',
        }
        values = {}
        for name, default in int_settings.items():
            try:
                values[name] = int(os.getenv(name, default))
                if values[name] <= 0:
                    errors.append(f"{name} must be a positive integer")
            except ValueError:
                errors.append(f"{name} must be a valid integer")

        for size, minimum in (('CAMERA_WIDTH', 'CAMERA_MIN_WIDTH'), ('CAMERA_HEIGHT', 'CAMERA_MIN_HEIGHT')):
            if size in values and minimum in values and values[size] < values[minimum]:
                errors.append(f"{size} is below {minimum}")

        try:
            interval = float(os.getenv('SCAN_FRAME_INTERVAL', '0.033'))
            if interval <= 0:
                errors.append("SCAN_FRAME_INTERVAL must be positive")
        except ValueError:
            errors.append("SCAN_FRAME_INTERVAL must be a number")

        # Log directory
        log_file = os.getenv('LOG_FILE', 'logs/rehla_trees.log')
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create log directory: {e}")

        # Camera device (warning only)
        camera_device = os.getenv('CAMERA_DEVICE', '')
        if camera_device and not Path(camera_device).exists():
            warnings.append(f"CAMERA_DEVICE not accessible: {camera_device}")

        return {
            'errors': errors,
            'warnings': warnings,
            'valid': len(errors) == 0
        }


def validate_config() -> bool:
    """Validate configuration and print results."""
    result = ConfigValidator.validate()

    if result['errors']:
        print("Configuration errors:")
        for error in result['errors']:
            print(f"  ERROR: {error}")

    if result['warnings']:
        print("Configuration warnings:")
        for warning in result['warnings']:
            print(f"  WARNING: {warning}")

    return bool(result['valid'])
