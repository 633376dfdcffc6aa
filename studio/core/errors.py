"""
Exception hierarchy shared by services, views and the HTTP layer.
"""


class StudioError(Exception):
    """Base class for all writing studio errors."""


class NotFoundError(StudioError):
    """Raised when a document, route or user does not exist."""


class ValidationError(StudioError):
    """Raised when input is rejected before reaching the document store."""


class UnsupportedFileType(ValidationError):
    """Raised when an import file has an extension we cannot read."""


class StorageError(StudioError):
    """Raised when the document store fails."""


class AuthError(StudioError):
    """Raised when registration or login fails."""

    def __init__(self, message: str, code: str = "unknown"):
        super().__init__(message)
        self.code = code


class NotAuthenticatedError(AuthError):
    """Raised when a user-scoped operation runs without a signed-in user."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="not-authenticated")
