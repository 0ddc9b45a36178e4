"""Custom exception types for the normal solver."""

from __future__ import annotations

from typing import Any


class NormalSolverError(Exception):
    """Base class for domain-specific errors."""


class InputShapeError(NormalSolverError):
    """Raised when mesh arrays have inconsistent shapes or invalid values."""

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        expected: Any | None = None,
        actual: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.expected = expected
        self.actual = actual


class ConfigurationError(NormalSolverError):
    """Raised for invalid solver parameters or an unusable adjacency cache."""


class MissingCacheError(ConfigurationError):
    """Raised when a cached method is requested but no cache is available."""

    def __init__(self, method: str, message: str | None = None) -> None:
        if message is None:
            message = (
                f"Calculate method {method!r} needs an adjacency cache. "
                "Build one with build_cache() or enable auto_build_cache."
            )
        super().__init__(message)
        self.method = method


class CacheTopologyMismatchError(ConfigurationError):
    """Raised when a cache was built for a different mesh topology."""

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        expected: Any | None = None,
        actual: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.expected = expected
        self.actual = actual


class CacheFormatError(ConfigurationError):
    """Raised when a persisted cache payload is corrupt or unsupported."""


__all__ = [
    "NormalSolverError",
    "InputShapeError",
    "ConfigurationError",
    "MissingCacheError",
    "CacheTopologyMismatchError",
    "CacheFormatError",
]
