"""Error taxonomy shared by every route.

Handlers raise one of the :class:`LMSError` subclasses; the application maps
the carried :class:`ErrorKind` to an HTTP status exactly once, in
``lms.main``.
"""
import enum


class ErrorKind(str, enum.Enum):
    unauthenticated = "unauthenticated"
    forbidden = "forbidden"
    not_found = "not_found"
    validation = "validation"
    unexpected = "unexpected"


STATUS_CODES = {
    ErrorKind.unauthenticated: 401,
    ErrorKind.forbidden: 403,
    ErrorKind.not_found: 404,
    ErrorKind.validation: 400,
    ErrorKind.unexpected: 500,
}


class LMSError(Exception):
    """Base class for errors that carry their own kind."""

    kind = ErrorKind.unexpected

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]


class Unauthenticated(LMSError):
    kind = ErrorKind.unauthenticated


class Forbidden(LMSError):
    kind = ErrorKind.forbidden


class NotFound(LMSError):
    kind = ErrorKind.not_found


class ValidationFailed(LMSError):
    kind = ErrorKind.validation


class Unexpected(LMSError):
    kind = ErrorKind.unexpected
