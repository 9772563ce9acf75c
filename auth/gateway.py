"""
auth/gateway.py -- The two authentication strategies exposed to the HTTP layer.

  sign_in(email, password)     -- password check through ResourceService
  verify_bearer(header)        -- stateless JWT check via CredentialService

Both are plain functions of their inputs returning an AuthOutcome; nothing is
stored between requests. The gateway never issues tokens: after a successful
sign-in the route asks CredentialService for one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import Authenticated, AuthOutcome, Errored, Rejected
from auth.tokens import CredentialService
from core.errors import INVALID_PASSWORD_MESSAGE
from core.models import Identity

if TYPE_CHECKING:
    from catalog.service import ResourceService

logger = logging.getLogger("biblio.auth")

_BEARER_PREFIX = "bearer "


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


class AuthenticationGateway:
    def __init__(self, resources: ResourceService, credentials: CredentialService) -> None:
        self.resources = resources
        self.credentials = credentials

    def sign_in(self, email: str, password: str) -> AuthOutcome:
        """Check email/password. Rejected carries "user not found" or "invalid password"."""
        result = self.resources.authenticate({"email": email, "password": password})
        if result.ok:
            return Authenticated(identity=result.data)
        if result.code is None and result.message != INVALID_PASSWORD_MESSAGE:
            # Unclassified failure: the store, not the caller, is at fault.
            logger.error("Sign-in lookup failed: %s", result.message)
            return Errored(cause=result.message or "authentication failed")
        logger.info("Sign-in rejected for %r: %s", email, result.message)
        return Rejected(reason=result.message or "authentication failed", code=result.code)

    def verify_bearer(self, authorization: str | None) -> AuthOutcome:
        """Verify the bearer token in an Authorization header value."""
        token = extract_bearer(authorization)
        if token is None:
            return Rejected(reason="missing bearer token")
        claims = self.credentials.verify_token(token)
        if claims is None:
            return Rejected(reason="invalid or expired token")
        return Authenticated(identity=Identity(user_id=claims["sub"], claims=claims))
