"""Custom exceptions for the price administration backend."""


class AppException(Exception):
    """Base exception for the price administration backend."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Client-visible exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(AppException):
    """The request references something that cannot be used (unknown parent, self-delete)."""

    def __init__(self, message: str = "Bad request"):
        """Initialize BadRequestError with 400 status code."""
        super().__init__(message, 400)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize NotFoundError with 404 status code."""
        super().__init__(message, 404)


class UnauthorizedError(AppException):
    """No resolvable principal for the request."""

    def __init__(self, message: str = "Please log in"):
        """Initialize UnauthorizedError with 401 status code."""
        super().__init__(message, 401)


class ForbiddenError(AppException):
    """Principal resolved but lacks the required permission."""

    def __init__(self, message: str = "Insufficient permission"):
        """Initialize ForbiddenError with 403 status code."""
        super().__init__(message, 403)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation failed"):
        """Initialize ValidationError with 422 status code."""
        super().__init__(message, 422)


class ConflictError(AppException):
    """Resource conflict exception."""

    def __init__(self, message: str = "Resource conflict"):
        """Initialize ConflictError with 409 status code."""
        super().__init__(message, 409)


class CyclicHierarchyError(ConflictError):
    """The organization parent relation contains a cycle.

    Carries the offending organization ids for server-side logging only;
    the client sees the generic message.
    """

    def __init__(self, org_ids=(), message: str = "Organization hierarchy is malformed"):
        self.org_ids = tuple(org_ids)
        super().__init__(message)


class UnknownPermissionError(ValueError):
    """A permission code is not part of the permission registry.

    Raised when routes or role assignments reference a code that does not
    exist, so typos fail at declaration time rather than silently denying.
    """

    def __init__(self, codes):
        self.codes = tuple(codes)
        super().__init__(f"Unknown permission code(s): {', '.join(self.codes)}")
