"""
Error taxonomy.

We separate error types so callers can react correctly.
Every error here is fatal to the current run. None of them is retried because
each one reflects a static misconfiguration rather than a transient condition.

Example:
ConflictingOverrides blocks before any source is read.
UnknownTopology blocks before any node is processed.
InsufficientResources aborts the sweep before any file is written.
"""

from __future__ import annotations


class TuneError(Exception):
    """Base class for all tuning exceptions."""


class ConflictingOverrides(TuneError):
    """Raised when more than one topology override source is requested."""


class InvalidInventory(TuneError):
    """Raised when an inventory document is missing or malformed."""


class InvalidSizeFormat(TuneError):
    """Raised when a size string cannot be converted."""


class UnknownTopology(TuneError):
    """Raised when classification could not find a primary master."""


class NoPrimaryMaster(TuneError):
    """Raised when the tool is not running on the declared primary master."""


class InvalidEnvironment(TuneError):
    """Raised when an environment override is not an integer."""


class InsufficientResources(TuneError):
    """Raised when a node does not meet the minimum system requirements."""

    def __init__(self, host: str) -> None:
        super().__init__(
            f"{host} does not meet the minimum system requirements to optimize its settings"
        )
        self.host = host


class CannotCreateOutputDirectory(TuneError):
    """Raised when the output directory or its nodes subdirectory cannot be created."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Unable to create output directory: {path}")
        self.path = path
