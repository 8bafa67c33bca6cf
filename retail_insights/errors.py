"""
Client-side exceptions, operation results, and user-facing error messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import ValidationError

T = TypeVar("T")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
NOT_AUTHENTICATED_MESSAGE = "User not authenticated"
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


class RetailInsightsError(Exception):
    """Base exception for client failures."""


class ParseError(RetailInsightsError):
    """Raised when an uploaded file cannot be read into rows and columns."""


class SchemaNotFoundError(RetailInsightsError):
    """Raised when no validation schema exists for a file type."""


class BackendRequestError(RetailInsightsError):
    """
    Raised when a backend call fails.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(BackendRequestError):
    """Raised when no usable access token is available or the backend rejects it."""


class NetworkError(BackendRequestError):
    """Raised when the backend cannot be reached."""


class DatasetCreationError(RetailInsightsError):
    """Raised when the dataset master record cannot be created."""


class UploadStepError(RetailInsightsError):
    """
    Raised when one ingestion upload step fails.
    """

    def __init__(self, message: str, *, step: str) -> None:
        super().__init__(message)
        self.step = step


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of one service-level operation.
    """

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "OperationResult[T]":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class ProcessedError:
    """
    Normalized view of an exception for display and reporting.
    """

    message: str
    user_message: str
    code: str | None = None
    retryable: bool = False


def user_message_for_status(status_code: int | None) -> str:
    """
    Map an HTTP status code to a message suitable for end users.
    """

    if status_code is None:
        return NETWORK_ERROR_MESSAGE
    if status_code == 401:
        return "You need to log in to access this resource."
    if status_code == 403:
        return "You don't have permission to perform this action."
    if status_code == 404:
        return "The requested resource was not found."
    if status_code == 408:
        return "Request timed out. Please try again."
    if status_code == 429:
        return "Too many requests. Please wait a moment and try again."
    if status_code in {502, 503, 504}:
        return "Server is temporarily unavailable. Please try again later."
    if status_code >= 500:
        return "Server error. Please try again later."
    return "An error occurred. Please try again."


def is_retryable_status(status_code: int | None) -> bool:
    if status_code is None:
        return True
    return status_code >= 500 or status_code in {408, 429}


def describe_error(exc: BaseException, *, default_message: str = UNEXPECTED_ERROR_MESSAGE) -> ProcessedError:
    """
    Convert an exception into a ProcessedError.

    Backend failures are described from their HTTP status, auth failures get
    the generic not-authenticated message, everything else falls back to
    ``default_message`` so internal details never reach the page.
    """

    if isinstance(exc, AuthError):
        return ProcessedError(
            message=str(exc),
            user_message=NOT_AUTHENTICATED_MESSAGE,
            code=str(exc.status_code) if exc.status_code is not None else None,
            retryable=False,
        )
    if isinstance(exc, BackendRequestError):
        return ProcessedError(
            message=str(exc),
            user_message=user_message_for_status(exc.status_code),
            code=str(exc.status_code) if exc.status_code is not None else None,
            retryable=is_retryable_status(exc.status_code),
        )
    if isinstance(exc, (ParseError, SchemaNotFoundError, DatasetCreationError, UploadStepError)):
        return ProcessedError(message=str(exc), user_message=str(exc))
    return ProcessedError(message=str(exc) or type(exc).__name__, user_message=default_message)


def validation_message(exc: ValidationError) -> str:
    """
    Join pydantic errors into one ``field: message`` line for forms.
    """

    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"
