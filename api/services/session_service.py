"""
SessionService: login, refresh, logout and forced session invalidation.

Credential state per account:
- password_hash       argon2 hash, replaced only by change_password
- refresh_token_hash  fingerprint of the single live refresh token (None: logged out)
- refresh_version     session epoch; every token embeds it as `ver`

Every method returns a Result; the enumerated auth failures are never raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from models.account_store import AccountStore
from models.user import Status, User
from utils.results import AuthError, Result
from utils.security import PasswordHasher, TokenCodec, fingerprint, fingerprints_match, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    account: User


@dataclass(frozen=True)
class RefreshResult:
    access_token: str
    # set only when rotation is on
    refresh_token: Optional[str] = None


class SessionService:

    def __init__(
        self,
        accounts: AccountStore,
        hasher: PasswordHasher,
        access_codec: TokenCodec,
        refresh_codec: TokenCodec,
        rotate_refresh_tokens: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.accounts = accounts
        self.hasher = hasher
        self.access_codec = access_codec
        self.refresh_codec = refresh_codec
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self._clock = clock

    def issue_access_token(self, user: User) -> str:
        return self.access_codec.encode(
            user.id,
            role=user.role.value,
            username=user.username,
            ver=user.refresh_version,
        )

    def issue_refresh_token(self, user: User) -> str:
        return self.refresh_codec.encode(user.id, ver=user.refresh_version)

    def login(self, identifier: str, password: str) -> Result[LoginResult]:
        """
        Verify credentials and open a session.

        Unknown and DELETED accounts fail exactly like a wrong password, after a
        full-cost dummy verification. The active check runs after the password
        check, so INACTIVE is only reported to callers holding the password.
        """
        user = self.accounts.find_by_identifier(identifier)
        if user is None or user.status == Status.DELETED:
            self.hasher.verify_dummy(password or "")
            return Result.failure(AuthError.INVALID_CREDENTIALS)

        if not self.hasher.verify(user.password_hash, password or ""):
            return Result.failure(AuthError.INVALID_CREDENTIALS)

        if not user.is_active:
            return Result.failure(AuthError.ACCOUNT_NOT_ACTIVE)

        access_token = self.issue_access_token(user)
        refresh_token = self.issue_refresh_token(user)
        self.accounts.record_login(user.id, fingerprint(refresh_token), self._clock())

        logger.info("User logged in", extra={"user_id": user.id})
        return Result.success(LoginResult(access_token, refresh_token, user))

    def refresh(self, refresh_token: str) -> Result[RefreshResult]:
        """
        Exchange a live refresh token for a new access token.

        Every failure (bad token, unknown or inactive account, older epoch,
        fingerprint mismatch or no session) is INVALID_REFRESH_TOKEN.
        """
        decoded = self.refresh_codec.decode(refresh_token)
        if not decoded.ok:
            return Result.failure(AuthError.INVALID_REFRESH_TOKEN)
        claims = decoded.value

        user = self.accounts.get(claims["sub"])
        if user is None or not user.is_active:
            return Result.failure(AuthError.INVALID_REFRESH_TOKEN)
        if claims["ver"] != user.refresh_version:
            return Result.failure(AuthError.INVALID_REFRESH_TOKEN)
        if not fingerprints_match(user.refresh_token_hash, refresh_token):
            return Result.failure(AuthError.INVALID_REFRESH_TOKEN)

        new_refresh = None
        if self.rotate_refresh_tokens:
            new_refresh = self.issue_refresh_token(user)
            swapped = self.accounts.rotate_refresh_token(
                user.id, fingerprint(refresh_token), fingerprint(new_refresh)
            )
            if not swapped:
                # a concurrent refresh consumed this token first
                return Result.failure(AuthError.INVALID_REFRESH_TOKEN)

        return Result.success(RefreshResult(self.issue_access_token(user), new_refresh))

    def logout(self, account_id: str) -> Result[None]:
        self.accounts.clear_refresh_token(account_id)
        logger.info("User logged out", extra={"user_id": account_id})
        return Result.success()

    def revoke_all_sessions(self, account_id: str) -> Result[None]:
        """Bump the epoch: every access and refresh token issued so far stops verifying."""
        self.accounts.bump_refresh_version(account_id)
        logger.info("All sessions revoked", extra={"user_id": account_id})
        return Result.success()

    def change_password(self, account_id: str, new_password: str) -> Result[None]:
        self.accounts.bump_refresh_version(account_id, password_hash=self.hasher.hash(new_password))
        logger.info("Password changed, sessions revoked", extra={"user_id": account_id})
        return Result.success()
