"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ModInfoError(Exception):
    """Base exception for all application-specific errors."""


class RemoteFetchError(ModInfoError):
    """Raised when a request to the GitHub API fails at the transport level."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class MalformedPayloadError(ModInfoError):
    """Raised when a GitHub API response cannot be decoded or has an unexpected shape."""


class StoreError(ModInfoError):
    """Raised when the persistent store cannot be read or written."""


class ConfigurationError(ModInfoError):
    """Raised for issues related to configuration loading or validation."""
