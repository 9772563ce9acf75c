"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

Only the Authorization: Bearer <token> header is honoured. Sessions are
configured on the app but never consulted for identity.

try_get_identity() is the soft variant (returns None on failure).
require_identity() wraps it and raises HTTP 401 with a fail envelope, which
the app's HTTPException handler renders as the single response.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.gateway import AuthenticationGateway
from auth.models import Authenticated
from core.models import Identity


def try_get_identity(request: Request) -> Identity | None:
    """Return the bearer token's Identity, or None. Never raises."""
    gateway: AuthenticationGateway = request.app.state.gateway
    outcome = gateway.verify_bearer(request.headers.get("Authorization"))
    if isinstance(outcome, Authenticated):
        return outcome.identity
    return None


def require_identity(request: Request) -> Identity:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(require_identity)): ...
    """
    identity = try_get_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={"status": "fail", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
