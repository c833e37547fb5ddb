"""
Custom exceptions for mods-loader.

This module defines domain-specific exceptions that separate transient
upstream failures (isolated to one mod during a pass) from configuration
problems and from upload validation errors reported back to the submitter.
"""


class ModsLoaderError(Exception):
    """
    Base exception for all mods-loader errors.

    All custom exceptions should inherit from this class so a reconciliation
    pass can catch every application-specific error at the mod boundary.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ModsLoaderError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Configuration file parsing errors
    - Malformed catalog entries
    - Malformed version strings
    - Unrecognized source kinds
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    pass


class VersionError(ConfigurationError):
    """Exception raised when a version string has non-numeric segments."""

    def __init__(self, message: str, version: str | None = None) -> None:
        super().__init__(message, f"version={version!r}")
        self.version = version


class UnknownSourceError(ConfigurationError):
    """Exception raised when a catalog entry names a source kind with no strategy."""

    def __init__(self, source_type: str | None) -> None:
        super().__init__("Unrecognized source kind", f"type={source_type!r}")
        self.source_type = source_type


# =============================================================================
# Upstream Errors
# =============================================================================


class FetchError(ModsLoaderError):
    """
    Exception raised when an upstream release feed is unreachable or returns
    a non-success status.

    Attributes:
        url: The feed URL that was being queried.
        status_code: The HTTP status code, when a response was received.
        headers: The response headers, when a response was received.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
        headers: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.headers = headers or {}


class RateLimitError(FetchError):
    """
    Exception raised when the GitHub API rate limit is exhausted.

    Attributes:
        reset_time: When the rate limit will reset (Unix timestamp).
    """

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        reset_time: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message,
            url=url,
            status_code=403,
            details=f"Resets at: {reset_time}",
        )
        self.reset_time = reset_time


class DownloadError(ModsLoaderError):
    """
    Exception raised when an artifact URL is unreachable or returns a
    non-success status.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ManifestError(ModsLoaderError):
    """
    Exception raised when the manifest inside a mod archive cannot be read.

    Never fatal: the downloader degrades to a null id and version.
    """

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(ModsLoaderError):
    """
    Exception raised when the content store or catalog database fails.

    Attributes:
        path: The filesystem path involved, when known.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class PathValidationError(StorageError):
    """Exception raised when a tag or filename is unsafe as a path component."""

    pass


# =============================================================================
# Upload Errors
# =============================================================================


class UploadValidationError(ModsLoaderError):
    """
    Exception raised when a manual upload is rejected.

    No state is mutated when this is raised.

    Attributes:
        field: The submission field that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field


class CatalogBusyError(ModsLoaderError):
    """Exception raised when the catalog writer guard cannot be acquired in time."""

    pass
