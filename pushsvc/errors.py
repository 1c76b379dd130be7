"""
Error kinds raised by the registry and the FCM delivery pipeline.

Callers branch on the class: ValidationError and NotFoundError map to 4xx
responses, NetworkError and the upstream errors tell the caller whether a
retry makes sense, StorageError aborts the current registration.
"""

from typing import Optional


class PushServiceError(Exception):
    """Base class for every error raised by this service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PushServiceError):
    """Missing or malformed input."""


class NotFoundError(PushServiceError):
    """Referenced user does not exist."""


class SigningError(PushServiceError):
    """JWT assertion could not be built or signed."""


class CredentialError(SigningError):
    """Service account file is missing, unreadable or incomplete."""


class NetworkError(PushServiceError):
    """Connect, timeout or TLS failure talking to an external API."""


class UpstreamError(PushServiceError):
    """External API answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExchangeError(UpstreamError):
    """OAuth2 token endpoint refused the assertion or returned no token."""


class DispatchError(UpstreamError):
    """FCM rejected the message."""

    # FCM v1 error codes meaning the registration token is dead
    INVALID_TOKEN_CODES = frozenset({"UNREGISTERED", "INVALID_REGISTRATION"})

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, status_code=status_code, body=body)
        self.error_code = error_code

    @property
    def is_invalid_token(self) -> bool:
        if self.error_code in self.INVALID_TOKEN_CODES:
            return True
        if self.status_code == 404:
            return True
        return (
            self.error_code == "INVALID_ARGUMENT"
            and "registration token" in self.message.lower()
        )


class StorageError(PushServiceError):
    """Database operation failed."""
