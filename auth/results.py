"""
auth/results.py -- Tagged result values returned at every workflow boundary.

Workflows never raise for expected failures. They return an AuthResult that
carries a Status classification and either a payload (success) or an AuthError
(failure). The API layer maps Status to an HTTP code; nothing in auth/ knows
about HTTP.

ErrorKind is the complete failure taxonomy. Each kind has one fixed Status, so
a workflow cannot accidentally report, say, InvalidCredentials as 403.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from auth.validators import PasswordRule, ordered_rules


class Status(str, Enum):
    """Transport-neutral response classification."""

    OK = "ok"
    CREATED = "created"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


class ErrorKind(str, Enum):
    MISSING_FIELDS = "missing_fields"
    INVALID_EMAIL = "invalid_email"
    INVALID_NAME = "invalid_name"
    WEAK_PASSWORD = "weak_password"
    INVALID_SECRET = "invalid_secret"
    EMAIL_TAKEN = "email_taken"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL_ERROR = "internal_error"

    @property
    def status(self) -> Status:
        return _STATUS_BY_KIND[self]

    @property
    def retryable(self) -> bool:
        """True only for a store outage; every other failure repeats identically on retry."""
        return self is ErrorKind.STORE_UNAVAILABLE


_STATUS_BY_KIND: dict[ErrorKind, Status] = {
    ErrorKind.MISSING_FIELDS: Status.BAD_REQUEST,
    ErrorKind.INVALID_EMAIL: Status.BAD_REQUEST,
    ErrorKind.INVALID_NAME: Status.BAD_REQUEST,
    ErrorKind.WEAK_PASSWORD: Status.BAD_REQUEST,
    ErrorKind.INVALID_SECRET: Status.FORBIDDEN,
    ErrorKind.EMAIL_TAKEN: Status.CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: Status.UNAUTHORIZED,
    ErrorKind.ACCOUNT_DEACTIVATED: Status.FORBIDDEN,
    ErrorKind.INSUFFICIENT_PERMISSION: Status.FORBIDDEN,
    ErrorKind.STORE_UNAVAILABLE: Status.INTERNAL_ERROR,
    ErrorKind.INTERNAL_ERROR: Status.INTERNAL_ERROR,
}


@dataclass(frozen=True)
class AuthError:
    """A terminal failure. message is safe to show to the caller."""

    kind: ErrorKind
    message: str
    failed_rules: tuple[PasswordRule, ...] = ()

    @property
    def status(self) -> Status:
        return self.kind.status


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a workflow: exactly one of payload or error is meaningful.

    Build instances through ok(), created() and fail() rather than the
    constructor so status and error always agree.
    """

    status: Status
    payload: Any = None
    error: AuthError | None = field(default=None)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, payload: Any) -> AuthResult:
        return cls(status=Status.OK, payload=payload)

    @classmethod
    def created(cls, payload: Any) -> AuthResult:
        return cls(status=Status.CREATED, payload=payload)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        failed_rules: frozenset[PasswordRule] | None = None,
    ) -> AuthResult:
        rules = tuple(ordered_rules(failed_rules)) if failed_rules else ()
        return cls(status=kind.status, error=AuthError(kind=kind, message=message, failed_rules=rules))
