from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int


class DirectoryError(Exception):
    """Base directory exception."""


class ServiceNotFoundError(DirectoryError):
    """Raised when no service record has the requested identifier."""


class InvalidIdentifierError(DirectoryError):
    """Raised when an identifier is not a well-formed service id."""


class ExternalSourceError(Exception):
    """Base exception for the third-party place-data source."""


class ExternalSourceUnavailableError(ExternalSourceError):
    """Raised when the place-data source cannot produce an answer right now."""


class AuthError(Exception):
    """Base authentication exception."""


class UserAlreadyExistsError(AuthError):
    pass


class InvalidOtpError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    pass


class UnverifiedUserError(AuthError):
    pass


class InvalidTokenError(AuthError):
    pass
