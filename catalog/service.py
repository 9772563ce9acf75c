"""
catalog/service.py -- Create/find operations for institutions, authors, books
and users.

ResourceService composes the validation schemas, the TenantResolver and the
CredentialService over a CatalogStore. Every public method returns a Result
and never raises: store errors become fail envelopes carrying the database
message, which is the system's catch-all error channel.

Pipelines are strictly sequential within one call:

    create_user:  validate -> hash password -> resolve institution -> insert
    create_book:  validate -> institution exists -> author exists -> insert

Uniqueness (domain, isbn, email) is left to the store's unique indexes.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from auth.tokens import CredentialService
from catalog.store import CatalogStore
from catalog.tenants import TenantResolver
from core.errors import (
    AUTHOR_NOT_FOUND,
    BOOK_NOT_FOUND,
    INSTITUTION_NOT_FOUND,
    INVALID_PASSWORD_MESSAGE,
    USER_NOT_FOUND,
    ErrorCode,
)
from core.models import Author, Book, BookDetail, Identity, Institution, User, UserDetail
from core.results import Result, collaborator_failure, fail, fail_with, success
from core.validation import AuthorInput, BookInput, InstitutionInput, SignInInput, UserInput, validate

logger = logging.getLogger("biblio.catalog")


def _guarded(operation: str, fn: Callable[[], Result]) -> Result:
    """Run fn, turning any store or hashing error into a fail envelope."""
    try:
        return fn()
    except Exception as exc:
        logger.warning("%s failed: %s", operation, exc)
        return collaborator_failure(exc)


def _one_or_missing(record, missing: ErrorCode) -> Result:
    return success(record) if record is not None else fail_with(missing)


class ResourceService:
    def __init__(
        self,
        store: CatalogStore,
        credentials: CredentialService,
        tenants: Optional[TenantResolver] = None,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.tenants = tenants or TenantResolver(store)

    # ------------------------------------------------------------------
    # Institutions
    # ------------------------------------------------------------------

    def create_institution(self, params) -> Result:
        checked = validate(InstitutionInput, params)
        if not checked.ok:
            return checked
        body: InstitutionInput = checked.data
        institution = Institution(name=body.name, url=body.url, domain=body.domain)

        def _create() -> Result:
            saved = self.store.create_institution(institution)
            logger.info("Institution %s created for domain %s", saved.id, saved.domain)
            return success(saved)

        return _guarded("create_institution", _create)

    def find_institutions(self, filters: Optional[dict] = None) -> Result:
        return _guarded("find_institutions", lambda: success(self.store.find_institutions(filters)))

    def find_institution(self, filters: Optional[dict] = None) -> Result:
        # Institutions are the tenant root and reference nothing, so there is
        # nothing to expand.
        return _guarded(
            "find_institution",
            lambda: _one_or_missing(self.store.find_one_institution(filters), INSTITUTION_NOT_FOUND),
        )

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def create_author(self, params) -> Result:
        checked = validate(AuthorInput, params)
        if not checked.ok:
            return checked
        author = Author(name=checked.data.name)
        return _guarded("create_author", lambda: success(self.store.create_author(author)))

    def find_authors(self, filters: Optional[dict] = None) -> Result:
        return _guarded("find_authors", lambda: success(self.store.find_authors(filters)))

    def find_author(self, filters: Optional[dict] = None) -> Result:
        return _guarded(
            "find_author",
            lambda: _one_or_missing(self.store.find_one_author(filters), AUTHOR_NOT_FOUND),
        )

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def create_book(self, params) -> Result:
        """Validate and insert a book whose author and institution both exist.

        A dangling institution reference fails with INSTITUTION_NOT_FOUND and
        a dangling author reference with AUTHOR_NOT_FOUND.
        """
        checked = validate(BookInput, params)
        if not checked.ok:
            return checked
        body: BookInput = checked.data

        def _create() -> Result:
            if self.store.find_one_institution({"id": body.institution}) is None:
                return fail_with(INSTITUTION_NOT_FOUND)
            if self.store.find_one_author({"id": body.author}) is None:
                return fail_with(AUTHOR_NOT_FOUND)
            book = Book(isbn=body.isbn, title=body.title, author=body.author, institution=body.institution)
            return success(self.store.create_book(book))

        return _guarded("create_book", _create)

    def find_books(self, filters: Optional[dict] = None) -> Result:
        return _guarded("find_books", lambda: success(self.store.find_books(filters)))

    def find_book(self, filters: Optional[dict] = None) -> Result:
        """Fetch one book with its author and institution expanded."""

        def _find() -> Result:
            book = self.store.find_one_book(filters)
            if book is None:
                return fail_with(BOOK_NOT_FOUND)
            return success(
                BookDetail(
                    book=book,
                    author=self.store.find_one_author({"id": book.author}),
                    institution=self.store.find_one_institution({"id": book.institution}),
                )
            )

        return _guarded("find_book", _find)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, params) -> Result:
        """Validate, hash, bind to the institution owning the email domain, insert.

        The saved User (hash included) is returned to the caller; it is the
        API layer's job not to expose password_hash.
        """
        checked = validate(UserInput, params)
        if not checked.ok:
            return checked
        body: UserInput = checked.data

        def _create() -> Result:
            password_hash = self.credentials.hash_password(body.password)
            tenant = self.tenants.resolve_institution_for_email(body.email)
            if not tenant.ok:
                return tenant
            user = User(
                name=body.name,
                email=body.email,
                role=body.role,
                password_hash=password_hash,
                institution=tenant.data.id,
            )
            saved = self.store.create_user(user)
            logger.info("User %s created in institution %s", saved.id, saved.institution)
            return success(saved)

        return _guarded("create_user", _create)

    def find_users(self, filters: Optional[dict] = None) -> Result:
        return _guarded("find_users", lambda: success(self.store.find_users(filters)))

    def find_user(self, filters: Optional[dict] = None) -> Result:
        """Fetch one user with their institution expanded."""

        def _find() -> Result:
            user = self.store.find_one_user(filters)
            if user is None:
                return fail_with(USER_NOT_FOUND)
            institution = self.store.find_one_institution({"id": user.institution})
            return success(UserDetail(user=user, institution=institution))

        return _guarded("find_user", _find)

    # ------------------------------------------------------------------
    # Authentication lookup
    # ------------------------------------------------------------------

    def authenticate(self, params) -> Result:
        """Check an email/password pair.

        Success carries an Identity (id and role, no credential material).
        An unknown email still pays for one bcrypt check against a dummy hash
        so response time does not reveal which emails are registered [C1].
        """
        checked = validate(SignInInput, params)
        if not checked.ok:
            return checked
        body: SignInInput = checked.data

        def _authenticate() -> Result:
            found = self.store.find_credentials(body.email)
            if found is None:
                self.credentials.verify_password(body.password, self.credentials.dummy_hash)
                return fail_with(USER_NOT_FOUND)
            if not self.credentials.verify_password(body.password, found.password_hash):
                return fail(INVALID_PASSWORD_MESSAGE)
            return success(Identity(user_id=found.id, role=found.role))

        return _guarded("authenticate", _authenticate)
