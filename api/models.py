"""
API request and response models for BookNest REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in books/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire format: camelCase JSON keys (createdBy, accessToken, ...). Models use a
to_camel alias generator with populate_by_name so Python code keeps
snake_case attribute names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from books.models import Book

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", something on each side, a dot in the domain.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookPayload(_CamelModel):
    """Request body for POST /api/books and PUT /api/books/{id}.

    Clients may send id and createdBy (for example when echoing a record they
    fetched). Both are ignored: the server assigns the id and stamps the
    caller's identity as createdBy.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4000)


class BookResponse(_CamelModel):
    """A book record as returned to its owner."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    title: str
    author: str
    description: Optional[str]
    created_by: str

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        """Build a BookResponse from a books.models.Book instance."""
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            description=book.description,
            created_by=book.created_by,
        )


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class RegisterRequest(_CamelModel):
    """Request body for POST /register. The email becomes the identity name."""

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=128)


class LoginRequest(_CamelModel):
    """Request body for POST /login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RefreshRequest(_CamelModel):
    """Request body for POST /refresh."""

    refresh_token: str = Field(min_length=1)


class AccessTokenResponse(_CamelModel):
    """Token pair returned by POST /login (bearer mode) and POST /refresh."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    token_type: str = "Bearer"
    access_token: str
    expires_in: int
    refresh_token: str


class ManageInfoRequest(_CamelModel):
    """Request body for POST /manage/info. Both fields are needed to change the password."""

    old_password: Optional[str] = Field(default=None, max_length=128)
    new_password: Optional[str] = Field(default=None, max_length=128)


class InfoResponse(_CamelModel):
    """Response for GET and POST /manage/info."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    email: str
    is_email_confirmed: bool = False


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
