"""
books/store.py -- SQLAlchemy-backed persistence layer for BookNest books.

Uses SQLAlchemy Core (not ORM) so the Book dataclass in books/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. BookStore is the repository;
_row_to_book is the mapper. Route handlers never touch SQL directly.

The store is ownership-agnostic: it stores created_by but never filters on
it except in list_books(). Callers decide who may see or change a record.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = BookStore()                                # Settings.database_url
    store = BookStore("postgresql://user:pw@host/db")  # PostgreSQL
    book_id = store.create_book(Book(title="Dune", author="Frank Herbert", created_by="alice@example.com"))
    books = store.list_books("alice@example.com")
    store.update_book(book_id, title="Dune", author="F. Herbert", description=None)
    store.delete_book(book_id)
    store.close()
"""

import logging
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from books.models import Book
from core.config import get_settings

logger = logging.getLogger("booknest.books")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_books = Table(
    "books",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("author", String(255), nullable=False),
    Column("description", Text),
    Column("created_by", String(255), nullable=False, index=True),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BookStore:
    """Repository for Book entities.

    One call is one transaction: every write method opens a connection,
    executes a single statement and commits. There is no cross-call
    transaction, so concurrent writers to the same row are last-writer-wins.
    """

    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_book(self, book: Book) -> int:
        """Insert a book and return its assigned ID. book.id is ignored."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _books.insert().values(
                    title=book.title,
                    author=book.author,
                    description=book.description,
                    created_by=book.created_by,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_book(self, book_id: int) -> Optional[Book]:
        """Return the book with this ID, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_books.select().where(_books.c.id == book_id)).fetchone()
        return _row_to_book(row) if row is not None else None

    def list_books(self, created_by: str) -> list[Book]:
        """Return every book created by the given identity, ordered by ID."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _books.select().where(_books.c.created_by == created_by).order_by(_books.c.id)
            ).fetchall()
        return [_row_to_book(r) for r in rows]

    def update_book(self, book_id: int, title: str, author: str, description: Optional[str]) -> bool:
        """Overwrite the editable fields of a book.

        id and created_by are not parameters, so they cannot change here.
        Returns True if a row was updated, False if book_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _books.update()
                .where(_books.c.id == book_id)
                .values(title=title, author=author, description=description)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_book(self, book_id: int) -> bool:
        """Hard-delete a book. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_books.delete().where(_books.c.id == book_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by the health check."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_book(row) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        author=row.author,
        description=row.description,
        created_by=row.created_by,
    )
