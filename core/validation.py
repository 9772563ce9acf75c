"""
core/validation.py -- Input schemas and the validate() entry point.

Every write operation validates its raw parameters against one of the
pydantic models below before touching the store. validate() converts the
outcome into a Result so callers never handle ValidationError themselves:

    result = validate(InstitutionInput, params)
    if not result.ok:
        return result          # code 1, message names the first bad field
    institution_input = result.data

Rules that pydantic-core's regex engine cannot express (lookaround in the
password-strength and domain rules) and the ISBN checksum run as
AfterValidators in plain Python.

Unknown fields are rejected. createdAt is tolerated on create inputs but
ignored: timestamps come from the server clock.
"""

import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    AnyUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
)

from core.errors import VALIDATION_ERROR
from core.models import ID_PATTERN
from core.results import Result, fail_with, success

# ---------------------------------------------------------------------------
# ISBN check digits
# ---------------------------------------------------------------------------

_ISBN_SEPARATORS = re.compile(r"[\s-]")
_ISBN10_RE = re.compile(r"^[0-9]{9}[0-9Xx]$")
_ISBN13_RE = re.compile(r"^[0-9]{13}$")


def normalize_isbn(value: str) -> str:
    """Drop hyphens and whitespace, e.g. '978-0-306-40615-7' -> '9780306406157'."""
    return _ISBN_SEPARATORS.sub("", value)


def is_valid_isbn10(value: str) -> bool:
    """Weights 10..1 over all ten characters; 'X' counts 10 in the check position."""
    if not _ISBN10_RE.match(value):
        return False
    total = sum((10 - i) * int(ch) for i, ch in enumerate(value[:9]))
    total += 10 if value[9] in "Xx" else int(value[9])
    return total % 11 == 0


def is_valid_isbn13(value: str) -> bool:
    """Alternating weights 1 and 3 over the first twelve digits, mod 10."""
    if not _ISBN13_RE.match(value):
        return False
    total = sum(int(ch) * (1 if i % 2 == 0 else 3) for i, ch in enumerate(value[:12]))
    return (10 - total % 10) % 10 == int(value[12])


def is_valid_isbn(value: str) -> bool:
    cleaned = normalize_isbn(value)
    return is_valid_isbn10(cleaned) or is_valid_isbn13(cleaned)


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*]).{8,32}$")
PASSWORD_MESSAGE = (
    "Value too weak, needs 1 lowercase, 1 uppercase, 1 number, 1 special character and between 8-32"
)

_DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)"
    r"(?:(?!-)[A-Za-z0-9-]{1,63}(?<!-)\.)+"
    r"[A-Za-z]{2,63}$"
)

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _check_isbn(value: str) -> str:
    if not is_valid_isbn(value):
        raise ValueError("must be a valid ISBN")
    # Stored canonical so the unique index sees one spelling per ISBN.
    return normalize_isbn(value).upper()


def _check_password(value: str) -> str:
    if not value:
        raise ValueError("Value should not be empty!")
    if not PASSWORD_RE.match(value):
        raise ValueError(PASSWORD_MESSAGE)
    return value


def _check_domain(value: str) -> str:
    if not _DOMAIN_RE.match(value):
        raise ValueError("must contain a valid domain name")
    # Domains compare case-insensitively; email-validator lowercases the
    # domain part of addresses, so institutions are stored the same way.
    return value.lower()


def _check_uri(value: str) -> str:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid uri") from None
    # Keep the caller's spelling; AnyUrl would append a trailing slash.
    return value


Name = Annotated[str, Field(min_length=1, max_length=36)]
Title = Annotated[str, Field(min_length=1, max_length=36)]
Isbn = Annotated[str, Field(min_length=1, max_length=36), AfterValidator(_check_isbn)]
Password = Annotated[str, AfterValidator(_check_password)]
Domain = Annotated[str, AfterValidator(_check_domain)]
Uri = Annotated[str, AfterValidator(_check_uri)]
ObjectId = Annotated[str, Field(pattern=ID_PATTERN)]
Role = Literal["student", "academic", "administrator"]


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class _CreateSchema(_Schema):
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class InstitutionInput(_CreateSchema):
    name: Name
    url: Uri
    domain: Domain


class AuthorInput(_CreateSchema):
    name: Name


class BookInput(_CreateSchema):
    institution: ObjectId
    isbn: Isbn
    title: Title
    author: ObjectId


class UserInput(_CreateSchema):
    name: Name
    email: EmailStr
    role: Role
    password: Password


class SignInInput(_Schema):
    """Sign-in credentials. 'username' is accepted as an alias of 'email'.

    email goes through the same EmailStr normalization as UserInput so the
    lookup key matches what registration stored (domain lowercased).
    """

    email: EmailStr = Field(validation_alias=AliasChoices("email", "username"))
    password: str = Field(min_length=1)


class IdInput(_Schema):
    id: ObjectId


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _describe(error: dict) -> str:
    """Render one pydantic error as '<field>: <message>'."""
    message = error["msg"]
    if error["type"] == "value_error":
        message = message.removeprefix("Value error, ")
    loc = ".".join(str(part) for part in error["loc"])
    return f"{loc}: {message}" if loc else message


def validate(schema: type[BaseModel], params: Any) -> Result:
    """Validate params against schema.

    Returns success(model) or a VALIDATION_ERROR fail whose message describes
    the first failing field. Nothing is partially applied.
    """
    try:
        value = schema.model_validate(params)
    except ValidationError as exc:
        return fail_with(VALIDATION_ERROR, _describe(exc.errors()[0]))
    return success(value)


def validate_id(value: Any) -> Result:
    """Validate an id path parameter; success carries the id string."""
    result = validate(IdInput, {"id": value})
    if not result.ok:
        return result
    return success(result.data.id)
