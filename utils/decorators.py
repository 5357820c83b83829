from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Iterable, Optional

from flask import g, request

from api.errors import auth_error_response
from models.account_store import AccountStore
from utils.results import AuthError, Result
from utils.security import TokenCodec


@dataclass(frozen=True)
class Identity:
    account_id: str
    role: str
    username: str
    epoch: int


class IdentityVerifier:
    """
    Checks the bearer access token on every protected request.

    Besides signature and expiry, the token's `ver` claim is compared with the
    account's current refresh_version, so bumping the epoch kills access
    tokens that have not expired yet. Read-only: never writes account state.
    """

    def __init__(self, accounts: AccountStore, access_codec: TokenCodec):
        self.accounts = accounts
        self.access_codec = access_codec

    @staticmethod
    def extract_bearer(header: Optional[str]) -> Optional[str]:
        if not header or not header.startswith("Bearer "):
            return None
        token = header[len("Bearer "):].strip()
        return token or None

    def verify(self, authorization: Optional[str]) -> Result[Identity]:
        token = self.extract_bearer(authorization)
        if token is None:
            return Result.failure(AuthError.MISSING_TOKEN)

        decoded = self.access_codec.decode(token)
        if not decoded.ok:
            # TOKEN_EXPIRED or INVALID_TOKEN, as decided by the codec
            return Result.failure(decoded.error)
        claims = decoded.value

        user = self.accounts.get(claims["sub"])
        if user is None or not user.is_active:
            return Result.failure(AuthError.INVALID_TOKEN)
        if user.refresh_version != claims["ver"]:
            return Result.failure(AuthError.SESSION_SUPERSEDED)

        return Result.success(
            Identity(
                account_id=user.id,
                role=claims.get("role", ""),
                username=claims.get("username", ""),
                epoch=claims["ver"],
            )
        )

    def login_required(self, fn):
        """Reject the request with 401 unless the bearer token verifies; sets g.identity."""
        @wraps(fn)
        def wrapper(*args, **kwargs):
            result = self.verify(request.headers.get("Authorization"))
            if not result.ok:
                return auth_error_response(result.error)
            g.identity = result.value
            return fn(*args, **kwargs)

        return wrapper

    def roles_required(self, required_roles: Iterable[str]):
        """
        Allow access if the identity's role is in required_roles.
        Runs after login_required; 403 on no match.
        """
        req = {str(getattr(r, "value", r)) for r in required_roles or []}

        def decorator(fn):
            @wraps(fn)
            @self.login_required
            def wrapper(*args, **kwargs):
                if g.identity.role not in req:
                    return auth_error_response(AuthError.INSUFFICIENT_PERMISSIONS)
                return fn(*args, **kwargs)

            return wrapper

        return decorator
