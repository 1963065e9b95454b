"""Domain errors raised by the service layer.

Each error carries the HTTP status the API boundary answers with, so routes
never have to translate them by hand.
"""


class SitsideError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SitsideError):
    """Malformed, missing or out-of-range input."""
    status_code = 400


class AuthenticationError(SitsideError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class AuthorizationError(SitsideError):
    """Authenticated, but not allowed to touch this resource."""
    status_code = 403


class NotFoundError(SitsideError):
    status_code = 404


class ConflictError(SitsideError):
    """Illegal state transition, duplicate email or duplicate review."""
    status_code = 409
