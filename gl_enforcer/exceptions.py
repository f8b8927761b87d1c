"""Exceptions raised by gl-enforcer."""

from __future__ import annotations


class EnforcerError(Exception):
    """Base class for all gl-enforcer errors."""


class ConfigError(EnforcerError):
    """Raised when the configuration document is missing, malformed, or lacks a required section."""


class RemoteError(EnforcerError):
    """Raised when a GitLab API call fails at the transport or API level."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RemoteError):
    """Raised when GitLab answers 404 for the requested resource."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class MatchError(NotFoundError):
    """Raised when a group path segment does not match any subgroup."""

    def __init__(self, path: str, segment: str):
        super().__init__(f"No subgroup matching '{segment}' while resolving '{path}'")
        self.path = path
        self.segment = segment
