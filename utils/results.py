"""
Result types returned by the auth core.

Auth failures are values, not exceptions: every operation of the session
service and the identity verifier hands back a `Result` which is either
ok (carrying a value) or failed (carrying one `AuthError`). The HTTP layer
maps the error to a response via `api.errors.auth_error_response`.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class AuthError(Enum):
    # value: (machine code, http status, user-facing message)
    INVALID_CREDENTIALS = ("INVALID_CREDENTIALS", 401, "Invalid credentials")
    ACCOUNT_NOT_ACTIVE = ("ACCOUNT_NOT_ACTIVE", 401, "Account is not active")
    INVALID_REFRESH_TOKEN = ("INVALID_REFRESH_TOKEN", 401, "Invalid refresh token")
    MISSING_TOKEN = ("MISSING_TOKEN", 401, "No token provided")
    INVALID_TOKEN = ("INVALID_TOKEN", 401, "Invalid token")
    TOKEN_EXPIRED = ("TOKEN_EXPIRED", 401, "Token expired")
    SESSION_SUPERSEDED = ("SESSION_SUPERSEDED", 401, "Token is no longer valid")
    INSUFFICIENT_PERMISSIONS = ("INSUFFICIENT_PERMISSIONS", 403, "Insufficient permissions")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def status(self) -> int:
        return self.value[1]

    @property
    def message(self) -> str:
        return self.value[2]


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AuthError) -> "Result":
        return cls(error=error)
