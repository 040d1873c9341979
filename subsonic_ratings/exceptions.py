"""
Custom exception hierarchy for the Subsonic rating importer.

This module defines domain-specific exceptions to provide better
error handling and more informative error messages throughout the application.
Only setup failures are raised out to the command line; per-track problems are
reported as results and log lines.
"""


class SubsonicImporterError(Exception):
    """Base exception for all rating importer errors."""
    pass


class APIError(SubsonicImporterError):
    """Base class for all API-related errors."""
    pass


class SubsonicAPIError(APIError):
    """Error communicating with the Subsonic API."""

    def __init__(self, message: str, code=None):
        super().__init__(message)
        self.code = code


class CatalogUnavailableError(APIError):
    """The catalog could not be walked completely; no index was produced."""
    pass


class DataError(SubsonicImporterError):
    """Base class for data-related errors."""
    pass


class ValidationError(DataError):
    """Data validation failed."""
    pass


class CacheError(DataError):
    """Index cache could not be read or has an unexpected shape."""
    pass


class ConfigurationError(SubsonicImporterError):
    """Configuration error (missing or invalid settings)."""
    pass
