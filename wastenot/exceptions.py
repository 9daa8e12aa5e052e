"""
Domain errors raised by the WasteNot services.

Each error carries the HTTP status code the API layer responds with, so
routers never need to translate them one by one.
"""

from typing import Any, Dict, Optional


class WasteNotError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(WasteNotError):
    """Referenced user, meal, activity or participant does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "id": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class DuplicateKeyError(WasteNotError):
    """Unique key collision (username, email, activity registration)."""

    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class InvalidImageError(WasteNotError):
    """Uploaded photo was rejected; the stored file has been discarded."""

    status_code = 400


class MissingPreconditionError(WasteNotError):
    """Requested transition is not allowed from the meal's current state."""

    status_code = 400


class MealAlreadyCompletedError(MissingPreconditionError):
    """Meal is completed; its photos, waste and points are final."""

    status_code = 409

    def __init__(self, meal_id: int):
        super().__init__(
            "Meal has already been completed", details={"meal_id": meal_id}
        )
        self.meal_id = meal_id


class EstimatorUnavailableError(Exception):
    """
    Vision estimate could not be produced (provider error, timeout, bad answer).

    Internal only: the waste resolver always recovers with the fallback default.
    """

    pass
