"""Fitness API exceptions."""

from typing import Any, List, Optional


class FitnessApiError(Exception):
    """Base exception for errors reported to API clients."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(FitnessApiError):
    """Raised when a payload or query does not satisfy its schema."""

    status_code = 400


class NotFoundError(FitnessApiError):
    """Raised when a referenced id is absent from its collection."""

    status_code = 404


class InvalidStateError(FitnessApiError):
    """Raised when an action is not allowed in the entity's current status."""

    status_code = 400
