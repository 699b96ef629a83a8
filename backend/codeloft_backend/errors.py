"""Error types raised by the Codeloft managers."""

from __future__ import annotations


class CodeloftError(RuntimeError):
    """Base class for domain errors surfaced to API callers."""

    status_code = 500


class NotFound(CodeloftError):
    """A project, file, branch or commit does not exist."""

    status_code = 404


class InvalidArgument(CodeloftError, ValueError):
    """A required field is missing or malformed."""

    status_code = 400


class NoStagedChanges(CodeloftError):
    """Raised when committing with an empty staging set."""

    status_code = 409

    def __init__(self, message: str = "No changes staged for commit") -> None:
        super().__init__(message)


class BranchNotFound(NotFound):
    """The requested branch does not exist."""


class NoCommits(CodeloftError):
    """The branch has no HEAD commit to work from."""

    status_code = 409


class StoreUnavailable(CodeloftError):
    """The key-value store could not be reached after retrying."""

    status_code = 503


__all__ = [
    "CodeloftError",
    "NotFound",
    "InvalidArgument",
    "NoStagedChanges",
    "BranchNotFound",
    "NoCommits",
    "StoreUnavailable",
]
