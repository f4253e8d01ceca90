"""
api/routes/books.py -- Book resource routes for the BookNest REST API.

Routes:
  POST   /api/books        -- create a book owned by the caller
  GET    /api/books        -- list the caller's books
  GET    /api/books/{id}   -- fetch one of the caller's books
  PUT    /api/books/{id}   -- replace title/author/description
  DELETE /api/books/{id}   -- hard delete

Ownership:
  Every handler resolves the caller's identity name through
  get_identity_name(), which raises 401 before any store access. A book that
  does not exist and a book that belongs to someone else both answer 404
  (book_not_found): a 403 would confirm that the id exists.

  created_by is stamped from the session on create and never read from the
  request body. Update copies only title, author and description.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response

from api.limiter import limiter
from api.models import BookPayload, BookResponse, ErrorDetail
from auth.dependencies import get_identity_name
from books.models import Book
from books.store import BookStore

logger = logging.getLogger("booknest.books")

router = APIRouter()

# Ids are SQLite INTEGERs; anything outside signed 64-bit range is a 422.
BookId = Annotated[int, Path(ge=-(2**63), le=2**63 - 1)]


def _get_owned_book(store: BookStore, book_id: int, identity: str) -> Book:
    """Return the book if it exists and belongs to identity, else raise 404."""
    book = store.get_book(book_id)
    if book is None or book.created_by != identity:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(
                code="book_not_found",
                message=f"Book {book_id} not found.",
            ).model_dump(),
        )
    return book


# ---------------------------------------------------------------------------
# POST /books -- create
# ---------------------------------------------------------------------------


@router.post("/books", response_model=BookResponse, status_code=201)
@limiter.limit("60/minute")
def create_book(
    request: Request,
    response: Response,
    body: BookPayload,
    identity: str = Depends(get_identity_name),
) -> BookResponse:
    """Create a book owned by the caller. Any createdBy in the body is overwritten."""
    store: BookStore = request.app.state.books
    book = Book(
        title=body.title,
        author=body.author,
        description=body.description,
        created_by=identity,
    )
    book_id = store.create_book(book)
    created = store.get_book(book_id)
    logger.info("Book %d created by %s", book_id, identity)
    response.headers["Location"] = f"/api/books/{book_id}"
    return BookResponse.from_book(created)


# ---------------------------------------------------------------------------
# GET /books -- list the caller's books
# ---------------------------------------------------------------------------


@router.get("/books", response_model=list[BookResponse])
def list_books(
    request: Request,
    identity: str = Depends(get_identity_name),
) -> list[BookResponse]:
    """Return every book created by the caller. No pagination."""
    store: BookStore = request.app.state.books
    return [BookResponse.from_book(b) for b in store.list_books(identity)]


# ---------------------------------------------------------------------------
# GET /books/{book_id}
# ---------------------------------------------------------------------------


@router.get("/books/{book_id}", response_model=BookResponse)
def get_book(
    request: Request,
    book_id: BookId,
    identity: str = Depends(get_identity_name),
) -> BookResponse:
    """Return one of the caller's books."""
    store: BookStore = request.app.state.books
    return BookResponse.from_book(_get_owned_book(store, book_id, identity))


# ---------------------------------------------------------------------------
# PUT /books/{book_id}
# ---------------------------------------------------------------------------


@router.put("/books/{book_id}", status_code=204)
def update_book(
    request: Request,
    book_id: BookId,
    body: BookPayload,
    identity: str = Depends(get_identity_name),
) -> Response:
    """Replace title, author and description. id and createdBy never change."""
    store: BookStore = request.app.state.books
    _get_owned_book(store, book_id, identity)
    store.update_book(book_id, title=body.title, author=body.author, description=body.description)
    logger.info("Book %d updated by %s", book_id, identity)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# DELETE /books/{book_id}
# ---------------------------------------------------------------------------


@router.delete("/books/{book_id}", status_code=204)
def delete_book(
    request: Request,
    book_id: BookId,
    identity: str = Depends(get_identity_name),
) -> Response:
    """Hard-delete one of the caller's books."""
    store: BookStore = request.app.state.books
    _get_owned_book(store, book_id, identity)
    store.delete_book(book_id)
    logger.info("Book %d deleted by %s", book_id, identity)
    return Response(status_code=204)
