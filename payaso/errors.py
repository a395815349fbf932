"""Error types raised by the data services and the business rules.

Every error carries the HTTP status the API answers with and a message
that is safe to show to the volunteer.
"""


class PortalError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {"msg": self.message}


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid data"

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class AuthenticationError(PortalError):
    status_code = 401
    default_message = "Invalid credentials"


class PermissionDenied(PortalError):
    status_code = 403
    default_message = "Unauthorized"


class NotFoundError(PortalError):
    status_code = 404
    default_message = "Not found"


class ConflictError(PortalError):
    status_code = 409
    default_message = "Conflict"


class CapacityFullError(ConflictError):
    default_message = "No spots left for your role in this event"


class InvalidTransition(ConflictError):
    default_message = "Transition not allowed"


class AlreadyRequested(ConflictError):
    default_message = "Graduation already requested"


class BackendError(PortalError):
    """Transient failure talking to the data store."""
    status_code = 503
    default_message = "Could not reach the data store, try again"
