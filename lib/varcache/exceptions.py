"""
Variable cache exceptions

This module defines the exception hierarchy for the variable cache library.
All cache-related errors inherit from VarCacheError base class.
"""


class VarCacheError(Exception):
    """
    Base exception for all variable cache errors.

    Catch this to handle any cache error generically.
    """

    pass


class InvalidExpiryError(VarCacheError, ValueError):
    """
    Exception raised when an expiry expression cannot be understood.

    Raised synchronously from store/setExpiry for strings that are neither
    "never", a number, a relative duration ("2 days", "1h30m") nor a date.

    Args:
        message: Description of why the expression is invalid
    """

    pass


class StorageError(VarCacheError):
    """
    Base exception for all storage backend errors.
    """

    pass


class StorageKeyError(StorageError):
    """
    Exception raised when a storage key is invalid.

    This exception is raised when a key fails validation, such as:
    - Contains only invalid characters
    - Exceeds maximum length
    - Is empty or only whitespace
    """

    pass


class StorageConfigError(StorageError):
    """
    Exception raised when storage configuration is invalid.

    This exception is raised during service initialization when:
    - Required configuration parameters are missing
    - Backend type is not recognized
    - The service is used before it was configured
    """

    pass


class StorageBackendError(StorageError):
    """
    Exception raised when a storage backend operation fails.

    This exception wraps backend-specific errors such as:
    - File system I/O errors
    - Network errors for remote storage
    - Permission errors

    Args:
        message: Description of the backend error
        originalError: The original exception that caused this error (optional)
    """

    def __init__(self, message: str, originalError: Exception | None = None):
        """
        Initialize StorageBackendError with message and optional original error.

        Args:
            message: Description of the backend error
            originalError: The original exception that caused this error
        """
        super().__init__(message)
        self.originalError = originalError


class BackendUnavailableError(StorageBackendError):
    """
    Exception raised when a backend cannot be initialised.

    For example an unwritable cache directory or an unreachable service.
    The cache facade stays un-initialised and retries on the next call.
    """

    pass
