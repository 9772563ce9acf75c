"""
core/errors.py -- Error taxonomy shared by every service.

Each classified failure has a stable numeric code that clients can switch on.
Store failures are deliberately left unclassified: the fail envelope carries
the database message verbatim and no code.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    code: int
    message: str


VALIDATION_ERROR = ErrorCode(1, "validation error")
INSTITUTION_NOT_FOUND = ErrorCode(1000, "institution not found")
USER_NOT_FOUND = ErrorCode(2000, "user not found")
BOOK_NOT_FOUND = ErrorCode(3000, "book not found")
AUTHOR_NOT_FOUND = ErrorCode(4000, "author not found")

INVALID_PASSWORD_MESSAGE = "invalid password"
