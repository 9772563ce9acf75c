"""
auth/tokens.py -- Password hashing and bearer-token utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id as the subject
       ("sub") plus "iat" and "exp". Verification returns None on any failure
       (bad signature, expired, malformed, missing subject) -- the route layer
       turns that into a 401.

  Passwords: bcrypt, used directly. Its cost factor makes brute force
       expensive; the cost is configurable (BCRYPT_ROUNDS, default 10).

  The module-level functions take every input explicitly. CredentialService
  binds secret, lifetime and cost from Settings once so services do not pass
  them around.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Union

import bcrypt
from jose import JWTError, jwt

from core.config import parse_duration

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("biblio.auth")

_ALGORITHM = "HS256"
DEFAULT_ROUNDS = 10
DEFAULT_EXPIRES_IN = "1d"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt ignores bytes past 72; password validation caps inputs at 32
    characters, well below that.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except Exception:
        return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(
    subject_id: str,
    secret: str,
    expires_in: Union[str, int, timedelta] = DEFAULT_EXPIRES_IN,
    issued_at: datetime | None = None,
) -> str:
    """Encode a signed JWT for subject_id.

    Args:
        subject_id: User id stored as the "sub" claim.
        secret:     HMAC signing key.
        expires_in: Lifetime as a timedelta, seconds, or shorthand ("1d", "12h").
        issued_at:  Override for "iat"; defaults to now (UTC).
    """
    lifetime = expires_in if isinstance(expires_in, timedelta) else parse_duration(expires_in)
    iat = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "iat": iat,
        "exp": iat + lifetime,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> dict | None:
    """Decode and verify a JWT. Returns the claims dict or None on any failure."""
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        return None
    if not claims.get("sub"):
        return None
    return claims


# ---------------------------------------------------------------------------
# Bound service
# ---------------------------------------------------------------------------


class CredentialService:
    """Hashing and token operations with their configuration bound in.

    Usage:
        credentials = CredentialService.from_settings(get_settings())
        hashed = credentials.hash_password("Abc123!@")
        token = credentials.issue_token(user.id)
        claims = credentials.verify_token(token)
    """

    def __init__(
        self,
        secret: str,
        expires_in: Union[str, int, timedelta] = DEFAULT_EXPIRES_IN,
        rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.secret = secret
        self.lifetime = expires_in if isinstance(expires_in, timedelta) else parse_duration(expires_in)
        self.rounds = rounds
        # Computed once so an unknown-email sign-in costs the same bcrypt work
        # as a wrong password [C1].
        self.dummy_hash = hash_password("biblio_timing_dummy", rounds=rounds)

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialService:
        return cls(
            secret=settings.token_secret,
            expires_in=settings.token_lifetime,
            rounds=settings.bcrypt_rounds,
        )

    @property
    def expires_in_seconds(self) -> int:
        return int(self.lifetime.total_seconds())

    def hash_password(self, plain: str) -> str:
        return hash_password(plain, rounds=self.rounds)

    def verify_password(self, plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)

    def issue_token(self, subject_id: str, issued_at: datetime | None = None) -> str:
        return issue_token(subject_id, self.secret, self.lifetime, issued_at=issued_at)

    def verify_token(self, token: str) -> dict | None:
        return verify_token(token, self.secret)
