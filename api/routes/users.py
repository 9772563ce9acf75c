"""
api/routes/users.py -- User registration, lookup and sign-in routes.

Routes:
  GET  /users          -- list users
  POST /users          -- create user (institution derived from email domain)
  POST /users/signin   -- password sign-in; returns a bearer token
  GET  /users/{id}     -- fetch user (institution expanded)
  GET  /books          -- books of the caller's institution (bearer token)

Security:
  [H2] POST /users/signin is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [C1] Unknown emails still pay for a bcrypt check (see ResourceService.authenticate).
  [M5] Cache-Control: no-store on sign-in responses.
  No user payload carries the password hash.
"""

import logging

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import Envelope, TokenResponse
from api.responses import envelope_response
from auth.dependencies import require_identity
from auth.gateway import AuthenticationGateway
from auth.models import Authenticated, Errored
from auth.tokens import CredentialService
from catalog.service import ResourceService
from core.models import Identity, UserDetail
from core.results import fail, success
from core.validation import validate_id

logger = logging.getLogger("biblio.api")

router = APIRouter()


def _resources(request: Request) -> ResourceService:
    return request.app.state.resources


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=Envelope)
def list_users(request: Request) -> JSONResponse:
    return envelope_response(_resources(request).find_users({}))


@router.post("/users", response_model=Envelope)
def create_user(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Register a user in the institution that owns the email's domain.

    Fails with code 1000 when no institution has that domain; nothing is
    written in that case.
    """
    return envelope_response(_resources(request).create_user(body))


@router.post("/users/signin", response_model=Envelope)
@limiter.limit(LOGIN_RATE_LIMIT)  # [H2] below @router so the registered endpoint is the limited wrapper
def sign_in(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Check credentials and issue a bearer token.

    Accepts {"email", "password"}; "username" is accepted in place of
    "email". Any rejection is a single 401 with a fail envelope and no token.
    """
    gateway: AuthenticationGateway = request.app.state.gateway
    credentials: CredentialService = request.app.state.credentials

    email = body.get("email", body.get("username"))
    outcome = gateway.sign_in(email, body.get("password"))
    if not isinstance(outcome, Authenticated):
        if isinstance(outcome, Errored):
            rejection = fail(outcome.cause)
        else:
            rejection = fail(outcome.reason, outcome.code)
        resp = envelope_response(rejection, status_code=401)
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    token = credentials.issue_token(outcome.identity.user_id)
    resp = envelope_response(
        success(TokenResponse(token=token, expires_in=credentials.expires_in_seconds)),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/users/{user_id}", response_model=Envelope)
def get_user(request: Request, user_id: str) -> JSONResponse:
    checked = validate_id(user_id)
    if not checked.ok:
        return envelope_response(checked)
    return envelope_response(_resources(request).find_user({"id": checked.data}))


# ---------------------------------------------------------------------------
# Books for the authenticated user
# ---------------------------------------------------------------------------


@router.get("/books", response_model=Envelope)
def list_my_books(request: Request, identity: Identity = Depends(require_identity)) -> JSONResponse:
    """List the books held by the bearer's institution.

    The token subject is looked up again so a token for a user that no
    longer resolves gets the user lookup's fail envelope, not an empty list.
    """
    resources = _resources(request)
    checked = validate_id(identity.user_id)
    if not checked.ok:
        return envelope_response(checked)
    found = resources.find_user({"id": checked.data})
    if not found.ok:
        return envelope_response(found)
    detail: UserDetail = found.data
    return envelope_response(resources.find_books({"institution": detail.user.institution}))
