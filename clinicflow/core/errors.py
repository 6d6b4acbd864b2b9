"""
Error taxonomy shared by the auth gate, the scheduling engine and the query planner.

Every business failure is raised where it is detected and travels unchanged to the
API boundary, where the exception handlers in ``clinicflow.main`` turn it into the
JSON error envelope.
"""

from typing import Any, Dict, Optional


class ClinicFlowError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": True,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class UnauthenticatedError(ClinicFlowError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class ForbiddenError(ClinicFlowError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class ValidationError(ClinicFlowError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class InvalidTransitionError(ValidationError):
    code = "invalid_transition"
    default_message = "Invalid appointment status transition"


class NotFoundError(ClinicFlowError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class ConflictError(ClinicFlowError):
    status_code = 409
    code = "conflict"
    default_message = "Resource conflicts with existing data"


class InternalError(ClinicFlowError):
    pass
