"""Typed failures raised by the domain and service layers.

Each error carries the HTTP status the presentation layer should answer with;
the services never translate them themselves.
"""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base class for every expected, caller-correctable failure."""

    status_code = 400

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError, ValueError):
    """Input breaks a structural or business rule."""

    status_code = 400


class InvalidDateOrdering(ValidationError):
    """The renewal date is not strictly after the start date."""

    def __init__(self, message: str = "La fecha de renovación debe ser posterior a la fecha de inicio"):
        super().__init__(message)


class NotFound(DomainError):
    status_code = 404


class Forbidden(DomainError):
    status_code = 403


class Conflict(DomainError):
    status_code = 409


class AuthenticationError(DomainError):
    status_code = 401
