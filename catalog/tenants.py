"""
catalog/tenants.py -- Map an email address to the institution that owns it.

The domain part of a user's email is the only thing binding a user to a
tenant. Resolution is an exact match on Institution.domain.
"""

import logging

from catalog.store import CatalogStore
from core.errors import INSTITUTION_NOT_FOUND
from core.results import Result, collaborator_failure, fail_with, success

logger = logging.getLogger("biblio.catalog")


def email_domain(email: str) -> str:
    """Everything after the first '@' ('' when there is none)."""
    _, _, domain = email.partition("@")
    return domain.lower()


class TenantResolver:
    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def resolve_institution_for_email(self, email: str) -> Result:
        """Return success(Institution) or fail.

        A miss fails with INSTITUTION_NOT_FOUND. A store error is a different
        thing from "no such institution" and is passed through with its own
        message and no code.
        """
        domain = email_domain(email)
        try:
            institution = self.store.find_one_institution({"domain": domain})
        except Exception as exc:
            logger.warning("Institution lookup for domain %r failed: %s", domain, exc)
            return collaborator_failure(exc)
        if institution is None:
            return fail_with(INSTITUTION_NOT_FOUND)
        return success(institution)
