"""Error taxonomy for lifecycle and billing operations.

Services raise these directly; because they are HTTPException subclasses
FastAPI renders them with the right status code and no extra handlers.
"""
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """A required field is missing or the transition is not legal from the current state."""

    def __init__(self, detail: str, field: str | None = None):
        body = {"message": detail, "field": field} if field else detail
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=body)
        self.field = field


class AuthorizationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Record locked by another actor, or changed underneath the caller."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class StoreError(HTTPException):
    """The database rejected or failed the operation; nothing was applied."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class NotificationError(Exception):
    """Email delivery failed. Never rolls back the transition that triggered it."""
