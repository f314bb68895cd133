"""
Error taxonomy shared by every app.

Services raise these directly; ``main.py`` renders them as
``{"kind": ..., "message": ...}`` so clients can branch on ``kind``.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class GarageError(HTTPException):
    kind = "Error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.extra = detail

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        if self.extra is not None:
            body["detail"] = self.extra
        return body


class NotFoundError(GarageError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(GarageError):
    kind = "ValidationError"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class ConflictError(GarageError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(GarageError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class UpstreamFailure(GarageError):
    """An external collaborator (email, payment gateway) failed; committed state stays."""

    kind = "UpstreamFailure"
    status_code = status.HTTP_502_BAD_GATEWAY


class ImmutableRecordError(ConflictError):
    def __init__(self, message: str, fields: Optional[list] = None):
        super().__init__(message, {"fields": fields} if fields else None)
