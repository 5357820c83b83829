"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (one codec per token type, each with its own key)
- SHA-256 fingerprints of refresh tokens
- a logging filter that keeps credentials out of log records
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.results import AuthError, Result

ACCESS = "access"
REFRESH = "refresh"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PasswordHasher:
    """Slow, salted password hashing (argon2id)."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = Argon2Hasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
        # verified against when the account does not exist, so a miss costs as much as a hit
        self._dummy_hash = self._ph.hash(secrets.token_urlsafe(16))

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        return self._ph.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """Verify a plaintext password against a stored hash; never raises on mismatch.
        """
        if not password_hash:
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def verify_dummy(self, password: str) -> bool:
        self.verify(self._dummy_hash, password)
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def fingerprint(token: str) -> str:
    """SHA-256 hex digest of a signed token string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def fingerprints_match(stored: Optional[str], token: str) -> bool:
    if not stored:
        return False
    return hmac.compare_digest(stored, fingerprint(token))


class TokenCodec:
    """
    Signs and verifies one type of JWT ("access" or "refresh").

    Access and refresh tokens use two codec instances with different secrets,
    so a token of one kind never verifies as the other even before the
    `type` claim is checked.
    """

    def __init__(
        self,
        secret: str,
        token_type: str,
        expires: timedelta,
        algorithm: str = "HS256",
        issuer: str = "user-auth-api",
        clock: Callable[[], datetime] = utcnow,
    ):
        if token_type not in (ACCESS, REFRESH):
            raise ValueError(f"unknown token type: {token_type}")
        self.secret = secret
        self.token_type = token_type
        self.expires = expires
        self.algorithm = algorithm
        self.issuer = issuer
        self._clock = clock

    @property
    def expires_in(self) -> int:
        return int(self.expires.total_seconds())

    def encode(self, subject: str, **claims: Any) -> str:
        now = self._clock()
        payload = {
            "iss": self.issuer,
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires).timestamp()),
            "type": self.token_type,
            "jti": generate_jti(),
        }
        payload.update(claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Result[Dict[str, Any]]:
        """
        Decode and validate a JWT of this codec's type.
        Fails with TOKEN_EXPIRED when only the expiry is wrong, INVALID_TOKEN otherwise.
        """
        if not token or not isinstance(token, str):
            return Result.failure(AuthError.INVALID_TOKEN)
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            return Result.failure(AuthError.TOKEN_EXPIRED)
        except jwt.InvalidTokenError:
            return Result.failure(AuthError.INVALID_TOKEN)

        if decoded.get("type") != self.token_type:
            return Result.failure(AuthError.INVALID_TOKEN)
        if not isinstance(decoded.get("ver"), int):
            return Result.failure(AuthError.INVALID_TOKEN)
        return Result.success(decoded)


_SENSITIVE = ("password", "token", "secret", "hash", "authorization", "cookie")
_MASK = "[REDACTED]"


def _is_sensitive(key: str) -> bool:
    lower = key.lower()
    return any(s in lower for s in _SENSITIVE)


class RedactingFilter(logging.Filter):
    """Mask credential-looking fields on log records (extra=... and dict %-args)."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in list(record.__dict__):
            if _is_sensitive(key):
                setattr(record, key, _MASK)
        if isinstance(record.args, dict):
            record.args = {k: (_MASK if _is_sensitive(str(k)) else v) for k, v in record.args.items()}
        return True
