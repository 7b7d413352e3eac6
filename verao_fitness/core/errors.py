"""
Error taxonomy shared by the gateway, services and endpoints.

Every failure is contained to the request that caused it and is shown to the
user as a short, human-readable message.
"""

from typing import Dict, Optional

from fastapi import HTTPException, status


class AppError(Exception):
    """Base class for errors surfaced to the user as a notification."""

    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or self.default_message
        # Raw text from the backend, kept for logs and friendly-message mapping
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    default_message = "Invalid data."

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RemoteReadError(AppError):
    default_message = "Could not load data."


class RemoteWriteError(AppError):
    default_message = "Could not save changes."


class UploadError(AppError):
    default_message = "Photo upload failed."


class AuthenticationError(AppError):
    default_message = "Authentication failed."


class PermissionDeniedError(AppError):
    default_message = "You don't have permission to do that."


class NotFoundError(AppError):
    default_message = "Not found."


# Substrings of backend error text mapped to friendlier messages
FRIENDLY_MESSAGES: Dict[str, str] = {
    "User already registered": "This email is already registered. Try signing in.",
    "Invalid login credentials": "Invalid email or password.",
    "Email not confirmed": "Please confirm your email before signing in.",
    "duplicate key value": "This record already exists.",
}


def friendly_message(error: AppError, fallback: Optional[str] = None) -> str:
    """Return the message to show for ``error``.

    The backend text in ``detail`` (falling back to ``message``) is matched by
    substring against FRIENDLY_MESSAGES; the first match wins. Without a match
    ``fallback`` is used when given, else the error's own message.
    """
    raw = error.detail or error.message
    for needle, message in FRIENDLY_MESSAGES.items():
        if needle in raw:
            return message
    return fallback or error.message


def http_exception(error: AppError) -> HTTPException:
    """Translate an AppError into the HTTPException an endpoint raises."""
    if isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, AuthenticationError):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(error, PermissionDeniedError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, RemoteReadError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=error.message)
