"""Custom exception classes for the CMMS platform."""

from fastapi import status


class CMMSError(Exception):
    """Base exception for CMMS Platform."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthorizationError(CMMSError):
    """Raised when user lacks permission."""
    pass


class AccessDenied(AuthorizationError):
    """Rejection raised by the permission gate.

    Serialized as ``{"error": message}`` with ``status_code``. The 403
    message is the same whatever permission was missing.
    """

    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden: Insufficient permissions"

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def unauthenticated(cls) -> "AccessDenied":
        return cls(status.HTTP_401_UNAUTHORIZED, cls.UNAUTHORIZED)

    @classmethod
    def forbidden(cls) -> "AccessDenied":
        return cls(status.HTTP_403_FORBIDDEN, cls.FORBIDDEN)


class ResourceNotFoundError(CMMSError):
    """Raised when a requested resource is not found."""
    pass


class PermissionResolutionError(CMMSError):
    """Raised when roles or permissions cannot be read from storage."""
    pass
