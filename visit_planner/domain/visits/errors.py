"""Visit domain errors - each maps to a fixed error code and HTTP status"""

from typing import Any, Optional


class VisitError(Exception):
    """Base class for errors reported to API callers"""

    code = "VISIT_ERROR"
    status_code = 400
    default_message = "Visit request failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "message": self.message, "error": self.code}
        if self.errors:
            body["errors"] = self.errors
        return body


class MissingDateParameter(VisitError):
    code = "MISSING_DATE_PARAMETER"
    default_message = "The date parameter is required"


class InvalidDateFormat(VisitError):
    code = "INVALID_DATE_FORMAT"
    default_message = "Date must be in YYYY-MM-DD format"


class MissingRequiredField(VisitError):
    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field {field} is required")


class MissingPostalCode(VisitError):
    code = "MISSING_POSTAL_CODE"
    default_message = "Postal code not provided"


class InvalidPostalCode(VisitError):
    code = "INVALID_POSTAL_CODE"
    default_message = "Invalid postal code"


class PostalCodeNotFound(VisitError):
    code = "POSTAL_CODE_NOT_FOUND"
    status_code = 404
    default_message = "Postal code not found"


class AddressSaveError(VisitError):
    code = "ADDRESS_SAVE_ERROR"
    default_message = "Error saving address"


class VisitSaveError(VisitError):
    code = "VISIT_SAVE_ERROR"
    default_message = "Error saving visit"


class VisitNotFound(VisitError):
    code = "VISIT_NOT_FOUND"
    status_code = 404
    default_message = "Visit not found"


class InternalError(VisitError):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, exception_message: str):
        super().__init__(errors={"exception": exception_message})
