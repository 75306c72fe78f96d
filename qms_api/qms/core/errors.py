"""
Domain error types raised by services.

Routes do not catch these; the global handlers in qms.api.main translate them into
the standard ErrorResponse envelope using the status_code and error_type below.
"""

from __future__ import annotations

from typing import Any, List, Optional


class QMSError(Exception):
    """Base class for business rule failures."""

    status_code: int = 400
    error_type: str = "qms_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(QMSError):
    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found", details={"id": str(entity_id)})


class AuthenticationError(QMSError):
    status_code = 401
    error_type = "authentication_failed"


class PermissionDeniedError(QMSError):
    status_code = 403
    error_type = "permission_denied"


class WorkflowError(QMSError):
    """The requested transition is not allowed from the current state."""

    status_code = 409
    error_type = "workflow_error"


class ValidationFailedError(QMSError):
    """A form was submitted with missing or invalid fields."""

    status_code = 422
    error_type = "incomplete_form"

    def __init__(self, message: str, missing: Optional[List[str]] = None) -> None:
        super().__init__(message, details={"missing": missing or []})
        self.missing = missing or []


# PUBLIC_INTERFACE
def require_fields(values: dict, labels: dict, message: str = "Please fill in all required fields.") -> None:
    """
    Raise ValidationFailedError listing every label whose value is empty.

    A value is empty when it is None, an empty/whitespace string or an empty list.
    Zero is a valid value.
    """
    missing = [label for key, label in labels.items() if _is_blank(values.get(key))]
    if missing:
        raise ValidationFailedError(message, missing=missing)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False
