"""
catalog/store.py -- SQLAlchemy-backed persistence layer for the Biblio catalog.

Uses SQLAlchemy Core (not ORM) so the dataclasses in core/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CatalogStore is the repository (create /
find / find_one per collection); the _row_to_* functions are the mappers.
Services never touch SQL directly.

Uniqueness (institution domain, book isbn, user email) is enforced by unique
indexes, not by read-then-write checks, so concurrent creates race at the
database and the loser gets sqlalchemy.exc.IntegrityError.

Filters are plain dicts keyed by entity field name ({"domain": "mit.edu"}).
Keys are checked against the table's columns before any SQL is built; an
unknown key raises ValueError.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CatalogStore("sqlite:///biblio.db")
    store.create_institution(Institution(name="MIT", url="https://mit.edu", domain="mit.edu"))
    store.find_one_institution({"domain": "mit.edu"})
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine

from core.models import Author, Book, Credentials, Institution, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_institutions = Table(
    "institutions",
    metadata,
    Column("id", String(24), primary_key=True),
    Column("name", String(36), nullable=False),
    Column("url", Text, nullable=False),
    Column("domain", String(253), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
)

_authors = Table(
    "authors",
    metadata,
    Column("id", String(24), primary_key=True),
    Column("name", String(36), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_books = Table(
    "books",
    metadata,
    Column("id", String(24), primary_key=True),
    Column("isbn", String(36), nullable=False, unique=True),
    Column("title", String(36), nullable=False),
    Column("author", String(24), nullable=False, index=True),
    Column("institution", String(24), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)

_users = Table(
    "users",
    metadata,
    Column("id", String(24), primary_key=True),
    Column("name", String(36), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("role", String(20), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("institution", String(24), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _where(table: Table, filters: Optional[dict]):
    """Build an equality WHERE clause from a filter dict.

    Column names come from the table definition, never from the caller, so
    an unknown key is rejected here rather than reaching SQL.
    """
    clauses = []
    for key, value in (filters or {}).items():
        if key not in table.c:
            raise ValueError(f"Unknown filter field {key!r} for {table.name}")
        clauses.append(table.c[key] == value)
    return clauses


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in FastAPI's thread pool, so the same pooled
            # connection can be used from more than one thread.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Generic create / find
    # ------------------------------------------------------------------

    def _insert(self, table: Table, values: dict) -> None:
        """Insert one row. Raises IntegrityError on a unique-index violation."""
        with self.engine.connect() as conn:
            conn.execute(table.insert().values(**values))
            conn.commit()

    def _find(self, table: Table, filters: Optional[dict], columns=None, limit: Optional[int] = None) -> list:
        stmt = select(*(columns or table.c)).where(*_where(table, filters)).order_by(table.c.created_at)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            return conn.execute(stmt).fetchall()

    def _find_one(self, table: Table, filters: Optional[dict], columns=None):
        rows = self._find(table, filters, columns=columns, limit=1)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Institutions
    # ------------------------------------------------------------------

    def create_institution(self, institution: Institution) -> Institution:
        self._insert(
            _institutions,
            {
                "id": institution.id,
                "name": institution.name,
                "url": institution.url,
                "domain": institution.domain,
                "created_at": institution.created_at,
            },
        )
        return institution

    def find_institutions(self, filters: Optional[dict] = None) -> list[Institution]:
        return [_row_to_institution(r) for r in self._find(_institutions, filters)]

    def find_one_institution(self, filters: Optional[dict] = None) -> Optional[Institution]:
        row = self._find_one(_institutions, filters)
        return _row_to_institution(row) if row is not None else None

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def create_author(self, author: Author) -> Author:
        self._insert(_authors, {"id": author.id, "name": author.name, "created_at": author.created_at})
        return author

    def find_authors(self, filters: Optional[dict] = None) -> list[Author]:
        return [_row_to_author(r) for r in self._find(_authors, filters)]

    def find_one_author(self, filters: Optional[dict] = None) -> Optional[Author]:
        row = self._find_one(_authors, filters)
        return _row_to_author(row) if row is not None else None

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def create_book(self, book: Book) -> Book:
        self._insert(
            _books,
            {
                "id": book.id,
                "isbn": book.isbn,
                "title": book.title,
                "author": book.author,
                "institution": book.institution,
                "created_at": book.created_at,
            },
        )
        return book

    def find_books(self, filters: Optional[dict] = None) -> list[Book]:
        return [_row_to_book(r) for r in self._find(_books, filters)]

    def find_one_book(self, filters: Optional[dict] = None) -> Optional[Book]:
        row = self._find_one(_books, filters)
        return _row_to_book(row) if row is not None else None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        self._insert(
            _users,
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "role": user.role,
                "password_hash": user.password_hash,
                "institution": user.institution,
                "created_at": user.created_at,
            },
        )
        return user

    def find_users(self, filters: Optional[dict] = None) -> list[User]:
        return [_row_to_user(r) for r in self._find(_users, filters)]

    def find_one_user(self, filters: Optional[dict] = None) -> Optional[User]:
        row = self._find_one(_users, filters)
        return _row_to_user(row) if row is not None else None

    def find_credentials(self, email: str) -> Optional[Credentials]:
        """Fetch only id, password_hash and role for the user with this email."""
        row = self._find_one(
            _users,
            {"email": email},
            columns=[_users.c.id, _users.c.password_hash, _users.c.role],
        )
        if row is None:
            return None
        return Credentials(id=row.id, password_hash=row.password_hash, role=row.role)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_institution(row) -> Institution:
    return Institution(
        id=row.id,
        name=row.name,
        url=row.url,
        domain=row.domain,
        created_at=row.created_at,
    )


def _row_to_author(row) -> Author:
    return Author(id=row.id, name=row.name, created_at=row.created_at)


def _row_to_book(row) -> Book:
    return Book(
        id=row.id,
        isbn=row.isbn,
        title=row.title,
        author=row.author,
        institution=row.institution,
        created_at=row.created_at,
    )


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=row.role,
        password_hash=row.password_hash,
        institution=row.institution,
        created_at=row.created_at,
    )
