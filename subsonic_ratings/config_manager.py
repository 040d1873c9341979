"""Configuration management for the Subsonic rating importer."""

import os
from pathlib import Path
from typing import Dict, Any

from subsonic_ratings.exceptions import ConfigurationError

HOME = Path.home()


class Config:
    """Configuration container with validation."""

    def __init__(self):
        """Initialize configuration from config.py file or environment."""
        try:
            import sys

            # Add parent directory to path to import config
            config_dir = Path(__file__).parent.parent
            if str(config_dir) not in sys.path:
                sys.path.insert(0, str(config_dir))

            try:
                import config as config_module
                self._load_from_module(config_module)
            except ImportError:
                self._load_from_env()
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        # Validation is explicit: command line options may still fill in
        # the username or change the star rating after loading.

    def _load_from_module(self, config_module) -> None:
        """Load configuration from config.py module."""
        # Subsonic connection
        self.subsonic_server = getattr(config_module, 'SUBSONIC_SERVER', 'localhost')
        self.subsonic_port = getattr(config_module, 'SUBSONIC_PORT', 4040)
        self.subsonic_protocol = getattr(config_module, 'SUBSONIC_PROTOCOL', 'https')
        self.subsonic_username = getattr(config_module, 'SUBSONIC_USERNAME', None)
        self.subsonic_password_file = getattr(
            config_module, 'SUBSONIC_PASSWORD_FILE', str(HOME / '.subsonic_password')
        )
        self.subsonic_api_version = getattr(config_module, 'SUBSONIC_API_VERSION', '1.15.0')

        # Import behaviour
        self.star_rating = getattr(config_module, 'STAR_RATING', 4.0)
        self.cache_path = getattr(config_module, 'CACHE_PATH', str(HOME / '.subsonic_cache'))

        # API rate limiting
        self.request_delay = getattr(config_module, 'REQUEST_DELAY', 0.0)
        self.max_retries = getattr(config_module, 'MAX_RETRIES', 3)
        self.retry_delay = getattr(config_module, 'RETRY_DELAY', 2.0)
        self.request_timeout = getattr(config_module, 'REQUEST_TIMEOUT', 30)

        # Logging
        self.log_level = getattr(config_module, 'LOG_LEVEL', 'INFO')

    def _load_from_env(self) -> None:
        """Load configuration from environment variables (fallback)."""
        # Subsonic connection
        self.subsonic_server = os.getenv('SUBSONIC_SERVER', 'localhost')
        self.subsonic_port = int(os.getenv('SUBSONIC_PORT', '4040'))
        self.subsonic_protocol = os.getenv('SUBSONIC_PROTOCOL', 'https')
        self.subsonic_username = os.getenv('SUBSONIC_USERNAME')
        self.subsonic_password_file = os.getenv(
            'SUBSONIC_PASSWORD_FILE', str(HOME / '.subsonic_password')
        )
        self.subsonic_api_version = os.getenv('SUBSONIC_API_VERSION', '1.15.0')

        # Import behaviour
        self.star_rating = float(os.getenv('STAR_RATING', '4'))
        self.cache_path = os.getenv('CACHE_PATH', str(HOME / '.subsonic_cache'))

        # API rate limiting
        self.request_delay = float(os.getenv('REQUEST_DELAY', '0'))
        self.max_retries = int(os.getenv('MAX_RETRIES', '3'))
        self.retry_delay = float(os.getenv('RETRY_DELAY', '2.0'))
        self.request_timeout = int(os.getenv('REQUEST_TIMEOUT', '30'))

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')

    def _validate(self) -> None:
        """Validate required configuration values."""
        if not self.subsonic_username:
            raise ConfigurationError(
                "SUBSONIC_USERNAME is required. Set it in config.py, the SUBSONIC_USERNAME "
                "environment variable or pass --username."
            )

        if self.subsonic_protocol not in ('http', 'https'):
            raise ConfigurationError(
                f"SUBSONIC_PROTOCOL must be 'http' or 'https', got {self.subsonic_protocol!r}."
            )

        try:
            star_rating = float(self.star_rating)
        except (TypeError, ValueError):
            raise ConfigurationError(f"STAR_RATING must be a number, got {self.star_rating!r}.")
        if not 0 <= star_rating <= 5:
            raise ConfigurationError("STAR_RATING must be a number between 0 and 5.")

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            'subsonic_server': self.subsonic_server,
            'subsonic_port': self.subsonic_port,
            'subsonic_protocol': self.subsonic_protocol,
            'subsonic_username': self.subsonic_username,
            'subsonic_api_version': self.subsonic_api_version,
            'star_rating': self.star_rating,
            'cache_path': self.cache_path,
            'request_delay': self.request_delay,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'request_timeout': self.request_timeout,
            'log_level': self.log_level,
        }

    def __repr__(self) -> str:
        """String representation (sanitized - no credentials)."""
        return (
            f"Config(subsonic={self.subsonic_protocol}://{self.subsonic_server}:{self.subsonic_port}, "
            f"star_rating={self.star_rating}, "
            f"cache={self.cache_path})"
        )


def read_password(path) -> str:
    """Read the Subsonic password from a file, dropping the trailing newline."""
    p = Path(path).expanduser()
    try:
        return p.read_text(encoding='utf-8').rstrip('\r\n')
    except OSError as e:
        raise ConfigurationError(f"Cannot read password file {p}: {e}")
