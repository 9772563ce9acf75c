"""
auth/models.py -- Outcome types for the authentication strategies.

Every strategy returns exactly one of these. A request starts
unauthenticated and ends in Authenticated or Rejected; Errored is a
Rejected whose cause was a failure rather than bad credentials, kept
separate so it can be logged differently.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from core.models import Identity


@dataclass(frozen=True)
class Authenticated:
    identity: Identity


@dataclass(frozen=True)
class Rejected:
    reason: str
    code: int | None = None


@dataclass(frozen=True)
class Errored:
    cause: str


AuthOutcome = Union[Authenticated, Rejected, Errored]
