"""
API response models for the Biblio REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in core/models.py, which own the
domain representation; the from_domain() factories map between the two.

Wire conventions:
  - Every response body is an Envelope: {status, data?, message?, code?}.
    Absent fields are omitted (Envelope.to_json() dumps with exclude_none).
  - Timestamps serialize as "createdAt".
  - Book.author / Book.institution / User.institution are ids in list
    responses and expanded objects in single-record responses.
  - UserResponse has no password field. Credential material never leaves
    the service boundary.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.models import Author, Book, BookDetail, Institution, User, UserDetail
from core.results import Result

# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    created_at: str = Field(serialization_alias="createdAt")


class InstitutionResponse(_Entity):
    name: str
    url: str
    domain: str

    @classmethod
    def from_domain(cls, institution: Institution) -> "InstitutionResponse":
        return cls(
            id=institution.id,
            name=institution.name,
            url=institution.url,
            domain=institution.domain,
            created_at=institution.created_at,
        )


class AuthorResponse(_Entity):
    name: str

    @classmethod
    def from_domain(cls, author: Author) -> "AuthorResponse":
        return cls(id=author.id, name=author.name, created_at=author.created_at)


class BookResponse(_Entity):
    isbn: str
    title: str
    author: Union[AuthorResponse, str, None]
    institution: Union[InstitutionResponse, str, None]

    @classmethod
    def from_domain(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            isbn=book.isbn,
            title=book.title,
            author=book.author,
            institution=book.institution,
            created_at=book.created_at,
        )

    @classmethod
    def from_detail(cls, detail: BookDetail) -> "BookResponse":
        book = detail.book
        return cls(
            id=book.id,
            isbn=book.isbn,
            title=book.title,
            author=AuthorResponse.from_domain(detail.author) if detail.author else None,
            institution=InstitutionResponse.from_domain(detail.institution) if detail.institution else None,
            created_at=book.created_at,
        )


class UserResponse(_Entity):
    name: str
    email: str
    role: str
    institution: Union[InstitutionResponse, str, None]

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            institution=user.institution,
            created_at=user.created_at,
        )

    @classmethod
    def from_detail(cls, detail: UserDetail) -> "UserResponse":
        user = detail.user
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            institution=InstitutionResponse.from_domain(detail.institution) if detail.institution else None,
            created_at=user.created_at,
        )


class TokenResponse(BaseModel):
    """data payload of a successful POST /users/signin."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = Field(default="bearer", serialization_alias="tokenType")
    expires_in: int = Field(serialization_alias="expiresIn")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

_SERIALIZERS: dict[type, Any] = {
    Institution: InstitutionResponse.from_domain,
    Author: AuthorResponse.from_domain,
    Book: BookResponse.from_domain,
    User: UserResponse.from_domain,
    BookDetail: BookResponse.from_detail,
    UserDetail: UserResponse.from_detail,
}


def _to_wire(data: Any) -> Any:
    if isinstance(data, list):
        return [_to_wire(item) for item in data]
    serializer = _SERIALIZERS.get(type(data))
    return serializer(data) if serializer else data


class Envelope(BaseModel):
    """The uniform {status, data?, message?, code?} response body."""

    model_config = ConfigDict(frozen=True)

    status: str
    data: Optional[Any] = None
    message: Optional[str] = None
    code: Optional[int] = None

    @classmethod
    def from_result(cls, result: Result) -> "Envelope":
        """Map a service Result to the wire, converting domain objects on the way."""
        return cls(status=result.status, data=_to_wire(result.data), message=result.message, code=result.code)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
