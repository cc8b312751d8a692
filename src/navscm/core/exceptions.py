"""
Custom exceptions for navscm.

Exception Hierarchy:
    NavScmError (base)
    ├── ConfigurationError (missing or invalid settings)
    ├── UnsupportedObjectError (object type or company scope not supported)
    ├── DuplicateObjectError (data source returned the same key twice)
    ├── ObjectFileError (malformed working-copy artifact)
    ├── CacheNotFoundError (no cache artifact yet, normal on first run)
    ├── InvalidCacheError (cache artifact exists but is corrupt)
    ├── DevEnvNotFoundError (development environment executable missing)
    ├── ScratchDirectoryError (scratch allocation or cleanup failed)
    └── DevEnvError (the development environment reported a failure)

Example:
    >>> from navscm.core.exceptions import DevEnvError
    >>> try:
    ...     devenv.export_object(obj, Path("Codeunit/1 - Test.txt"))
    ... except DevEnvError as e:
    ...     print(f"{e.operation} of {e.cache_key} failed: {e.message}")
"""

from __future__ import annotations

from pathlib import Path


class NavScmError(Exception):
    """
    Base exception for all navscm errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ConfigurationError(NavScmError):
    """Raised when a required setting is missing or invalid."""


class UnsupportedObjectError(NavScmError):
    """
    Raised when an object row cannot be represented.

    Objects of unknown or reserved types, and objects bound to a company
    (multi-tenant variants), are rejected when they are loaded.

    Attributes:
        cache_key: Key of the offending object ("type.id")
    """

    def __init__(self, cache_key: str, message: str, **context: object) -> None:
        super().__init__(message, cache_key=cache_key, **context)
        self.cache_key = cache_key

    def __str__(self) -> str:
        return f"Object {self.cache_key}: {self.message}"


class DuplicateObjectError(NavScmError):
    """Raised when the same object key shows up more than once."""

    def __init__(self, cache_key: str, message: str, **context: object) -> None:
        super().__init__(message, cache_key=cache_key, **context)
        self.cache_key = cache_key

    def __str__(self) -> str:
        return f"Duplicate object {self.cache_key}: {self.message}"


class ObjectFileError(NavScmError):
    """
    Raised when an exported object file does not match the expected layout.

    Attributes:
        path: The file that failed to parse
    """

    def __init__(self, path: Path, message: str, **context: object) -> None:
        super().__init__(message, path=str(path), **context)
        self.path = path

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class CacheNotFoundError(NavScmError):
    """Raised when no cache artifact exists at the given path."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"No object cache found at {path}", path=str(path))
        self.path = path


class InvalidCacheError(NavScmError):
    """Raised when a cache artifact cannot be read back."""

    def __init__(self, path: Path, message: str, **context: object) -> None:
        super().__init__(message, path=str(path), **context)
        self.path = path

    def __str__(self) -> str:
        return f"Invalid object cache {self.path}: {self.message}"


class DevEnvNotFoundError(NavScmError):
    """Raised when the development environment executable does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"The file {path} was not found.", path=str(path))
        self.path = path


class ScratchDirectoryError(NavScmError):
    """Raised when a scratch directory cannot be allocated or removed."""


class DevEnvError(NavScmError):
    """
    Raised when the development environment reports a failure.

    Attributes:
        cache_key: Key of the object the operation was run against
        operation: Operation that failed (export, import, compile)
        output: Captured command output, if any
    """

    def __init__(
        self,
        cache_key: str,
        operation: str,
        message: str,
        output: str = "",
        **context: object,
    ) -> None:
        super().__init__(message, cache_key=cache_key, operation=operation, **context)
        self.cache_key = cache_key
        self.operation = operation
        self.output = output

    def __str__(self) -> str:
        return f"{self.operation.capitalize()} of object {self.cache_key} failed: {self.message}"


__all__ = [
    "NavScmError",
    "ConfigurationError",
    "UnsupportedObjectError",
    "DuplicateObjectError",
    "ObjectFileError",
    "CacheNotFoundError",
    "InvalidCacheError",
    "DevEnvNotFoundError",
    "ScratchDirectoryError",
    "DevEnvError",
]
