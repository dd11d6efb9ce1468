"""Error taxonomy for the compliance engine."""


class ComplianceError(Exception):
    """Base class. `message` is safe to show to the caller verbatim."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(ComplianceError):
    """Malformed or out-of-bound input. User-correctable."""
    status_code = 400


class AuthorizationError(ComplianceError):
    """
    The actor lacks the required role, or is not authenticated.

    The message never explains which of the two it was.
    """
    status_code = 403


class NotFoundError(ComplianceError):
    """A referenced employee or override does not exist."""
    status_code = 404


class ComplianceSystemError(ComplianceError):
    """
    Store unreachable or an unexpected exception.

    Never interpreted as permission: in the assignment gate this always resolves to a denial.
    """
    status_code = 500
