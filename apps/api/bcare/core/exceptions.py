"""Service-layer exceptions mapped to HTTP responses in bcare.main."""


class ServiceError(Exception):
    """Base class for business-rule failures raised by services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing/invalid input or a rejected business rule."""

    status_code = 400


class ForbiddenError(ServiceError):
    """Actor is not allowed to perform the operation."""

    status_code = 403


class NotFoundError(ServiceError):
    """Referenced ticket, activity, policy or feedback does not exist."""

    status_code = 404


class ConflictError(ServiceError):
    """Operation conflicts with current state (double delete, duplicate feedback)."""

    status_code = 409
