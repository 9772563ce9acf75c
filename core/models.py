"""
core/models.py -- Domain dataclasses for the Biblio catalog.

These are pure data containers. Validation lives in core/validation.py and
all persistence in catalog/store.py.

Institution is the tenant root. Author, Book and User reference it by id;
the references are non-owning and never cascade.

Ids are 24-character hex strings and created_at is stamped from the server
clock (UTC) when the object is constructed. Neither changes afterwards.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

# Id path parameters and book references must look like this.
ID_PATTERN = r"^[a-zA-Z0-9]{24}$"

ROLES = ("student", "academic", "administrator")


def new_id() -> str:
    return secrets.token_hex(12)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Institution:
    name: str
    url: str
    domain: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass
class Author:
    name: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass
class Book:
    """A catalogued title. author and institution hold referenced ids."""

    isbn: str
    title: str
    author: str
    institution: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass
class User:
    """A library user bound to the institution owning their email domain.

    password_hash is write-once and must never leave the service boundary;
    the API layer maps users through UserResponse, which has no such field.
    """

    name: str
    email: str
    role: str  # "student" | "academic" | "administrator"
    password_hash: str
    institution: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass
class Credentials:
    """Projection used by sign-in: only what is needed to check a password."""

    id: str
    password_hash: str
    role: str


@dataclass
class Identity:
    """Who a request is acting as once authentication succeeded."""

    user_id: str
    role: Optional[str] = None
    claims: dict = field(default_factory=dict)


@dataclass
class BookDetail:
    """A book with its author and institution expanded."""

    book: Book
    author: Optional[Author]
    institution: Optional[Institution]


@dataclass
class UserDetail:
    """A user with their institution expanded."""

    user: User
    institution: Optional[Institution]
