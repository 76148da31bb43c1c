"""
core/errors.py -- Error taxonomy shared by the identity core and the API layer.

Every expected failure is an AppError subclass carrying a stable machine code
(the error kind), a human-readable message, an actionable hint and the HTTP
status the API layer should answer with. api/main.py renders all of them in
the same ErrorResponse envelope, so route handlers simply raise.

Kinds:
  NotFoundError        -- token / session / user does not resolve, or a
                          conditional update matched zero rows.
  UnauthorizedError    -- credential verification failed, or the request
                          carries a session cookie that no longer resolves.
  ForbiddenError       -- caller lacks the required feature.
  ValidationError      -- uniqueness conflicts ("already in use").
  InternalServerError  -- programmer error (unknown feature, caller without a
                          feature list, nothing to filter). Never caused by
                          end-user input.
  ServiceError         -- a collaborator (SMTP) is unavailable.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for every structured failure the service reports."""

    code: str = "internal_error"
    status_code: int = 500
    default_message: str = "An unexpected internal error occurred."
    default_action: str = "Contact support."

    def __init__(
        self,
        message: str | None = None,
        action: str | None = None,
        cause: BaseException | str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.action = action or self.default_action
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "action": self.action}


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404
    default_message = "The requested resource was not found."
    default_action = "Check that the data provided is correct."


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401
    default_message = "User is not authenticated."
    default_action = "Log in and try again."


class ForbiddenError(AppError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action."
    default_action = "Check that your user has the required feature."


class ValidationError(AppError):
    code = "validation_error"
    status_code = 400
    default_message = "The data provided is invalid."
    default_action = "Adjust the data sent and try again."


class InternalServerError(AppError):
    """Raised when calling code violates a precondition of the identity core.

    The message shown to clients stays generic; the precondition that failed
    travels in `cause` and only reaches the server log.
    """

    code = "internal_error"
    status_code = 500


class ServiceError(AppError):
    code = "service_unavailable"
    status_code = 503
    default_message = "A dependent service is unavailable."
    default_action = "Try again later."
