"""
core/results.py -- The uniform result envelope returned by every core operation.

    {status: "success" | "fail", data?, message?, code?}

Failure is data, not an exception: services build a Result and return it,
and only the HTTP layer decides whether a failure changes the status code.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import DBAPIError

from core.errors import ErrorCode

SUCCESS = "success"
FAIL = "fail"


@dataclass(frozen=True)
class Result:
    status: str
    data: Any = None
    message: Optional[str] = None
    code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


def success(data: Any = None) -> Result:
    return Result(status=SUCCESS, data=data)


def fail(message: str, code: Optional[int] = None) -> Result:
    return Result(status=FAIL, message=message, code=code)


def fail_with(error: ErrorCode, message: Optional[str] = None) -> Result:
    """Fail with a classified error, optionally overriding its default message."""
    return Result(status=FAIL, message=message or error.message, code=error.code)


def collaborator_failure(exc: Exception) -> Result:
    """Fail envelope for an unclassified store error.

    DBAPIError wraps the driver exception; its str() also embeds the SQL and
    bound parameters, so the driver's own message is used instead.
    """
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return fail(str(exc.orig))
    return fail(str(exc))
