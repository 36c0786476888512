"""Exceptions raised by the PR tracker."""
from typing import Optional


class PRTrackerError(Exception):
    """Base class for all PR tracker errors."""


class ConfigurationError(PRTrackerError, ValueError):
    """Invalid configuration value."""


class DuplicatePRNumberError(PRTrackerError):
    """A PR number collides (case-insensitively) with another stored record."""

    def __init__(self, pr_number: str, existing=None, message: Optional[str] = None):
        self.pr_number = pr_number
        self.existing = existing
        super().__init__(message or f'PR Number "{pr_number}" already exists.')


class BackendUnavailableError(PRTrackerError):
    """The remote backend could not be read."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WriteFailureError(PRTrackerError):
    """A remote ADD, UPDATE or DELETE did not succeed."""

    def __init__(self, message: str, removed_locally: bool = False):
        self.removed_locally = removed_locally
        super().__init__(message)
