"""Exception types raised by the map subsystem."""

from __future__ import annotations

from typing import Tuple


class MapError(Exception):
    """Base class for map subsystem errors."""


class MapNotFoundError(MapError, LookupError):
    """Raised when an update targets a path with no loadable config."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Cannot update map: config not found for {path}")
        self.path = path


class MapWriteError(MapError, OSError):
    """Raised to the caller whose queued write failed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to write map {path}: {reason}")
        self.path = path


class RescaleValidationError(MapError, ValueError):
    """
    Raised when a replacement base image cannot be used.

    Carries both dimension pairs (when known) so the UI can show
    them next to the message.
    """

    def __init__(
        self,
        message: str,
        reference_size: Tuple[int, int] = (0, 0),
        candidate_size: Tuple[int, int] = (0, 0),
    ) -> None:
        super().__init__(message)
        self.reference_size = reference_size
        self.candidate_size = candidate_size
