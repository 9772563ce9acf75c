"""
api/routes/institutions.py -- Institution, author and catalogue routes.

Routes (registration order matters: literal segments before {id} captures):
  GET  /institutions                      -- list institutions
  POST /institutions                      -- create institution
  GET  /institutions/authors              -- list authors
  POST /institutions/authors              -- create author
  GET  /institutions/authors/{author_id}  -- fetch author
  POST /institutions/books                -- create book
  GET  /institutions/books/{book_id}      -- fetch book (author + institution expanded)
  GET  /institutions/{institution_id}     -- fetch institution
  GET  /institutions/{institution_id}/books -- books held by an institution

All routes are public. Handlers are plain def functions so FastAPI runs
them in its thread pool; store and bcrypt work never blocks the event loop.
Id path parameters are checked against the id pattern before the service
is called; a mismatch is a validation fail envelope (code 1).
"""

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from api.models import Envelope
from api.responses import envelope_response
from catalog.service import ResourceService
from core.validation import validate_id

router = APIRouter()


def _resources(request: Request) -> ResourceService:
    return request.app.state.resources


@router.get("/institutions", response_model=Envelope)
def list_institutions(request: Request) -> JSONResponse:
    return envelope_response(_resources(request).find_institutions({}))


@router.post("/institutions", response_model=Envelope)
def create_institution(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Create an institution. A duplicate domain fails with the store's message."""
    return envelope_response(_resources(request).create_institution(body))


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


@router.get("/institutions/authors", response_model=Envelope)
def list_authors(request: Request) -> JSONResponse:
    return envelope_response(_resources(request).find_authors({}))


@router.post("/institutions/authors", response_model=Envelope)
def create_author(request: Request, body: dict = Body(...)) -> JSONResponse:
    return envelope_response(_resources(request).create_author(body))


@router.get("/institutions/authors/{author_id}", response_model=Envelope)
def get_author(request: Request, author_id: str) -> JSONResponse:
    checked = validate_id(author_id)
    if not checked.ok:
        return envelope_response(checked)
    return envelope_response(_resources(request).find_author({"id": checked.data}))


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


@router.post("/institutions/books", response_model=Envelope)
def create_book(request: Request, body: dict = Body(...)) -> JSONResponse:
    """Create a book. The referenced author and institution must exist."""
    return envelope_response(_resources(request).create_book(body))


@router.get("/institutions/books/{book_id}", response_model=Envelope)
def get_book(request: Request, book_id: str) -> JSONResponse:
    checked = validate_id(book_id)
    if not checked.ok:
        return envelope_response(checked)
    return envelope_response(_resources(request).find_book({"id": checked.data}))


# ---------------------------------------------------------------------------
# Single institution
# ---------------------------------------------------------------------------


@router.get("/institutions/{institution_id}", response_model=Envelope)
def get_institution(request: Request, institution_id: str) -> JSONResponse:
    checked = validate_id(institution_id)
    if not checked.ok:
        return envelope_response(checked)
    return envelope_response(_resources(request).find_institution({"id": checked.data}))


@router.get("/institutions/{institution_id}/books", response_model=Envelope)
def list_institution_books(request: Request, institution_id: str) -> JSONResponse:
    checked = validate_id(institution_id)
    if not checked.ok:
        return envelope_response(checked)
    return envelope_response(_resources(request).find_books({"institution": checked.data}))
