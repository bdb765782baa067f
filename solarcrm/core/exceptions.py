"""Custom exceptions for the solarcrm application."""

from __future__ import annotations

from typing import Any


class SolarCRMException(Exception):
    """Base exception for solarcrm application."""

    pass


class ValidationError(SolarCRMException):
    """Raised when validation fails."""

    pass


class NotFoundError(SolarCRMException):
    """Raised when a resource is not found."""

    pass


class ConflictError(SolarCRMException):
    """Raised when live dependents block a destructive action.

    ``counts`` holds the blocking dependent counts so the caller can decide
    whether to cascade explicitly.
    """

    def __init__(self, message: str, counts: Any = None) -> None:
        super().__init__(message)
        self.counts = counts


class ConfigurationError(SolarCRMException):
    """Raised when configuration is invalid."""

    pass
