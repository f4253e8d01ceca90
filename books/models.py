"""
books/models.py -- Domain dataclass for the BookNest book store.

Pure data container with zero logic. Ownership checks live in the route
layer (api/routes/books.py); persistence lives in books/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Book:
    """A book record owned by the user who created it.

    created_by is the creator's identity name. It is stamped by the server on
    insert and is the sole ownership/visibility key; nothing updates it.

    id is None before the record is written to the database.
    """

    title: str
    author: str
    created_by: str
    description: Optional[str] = None
    id: Optional[int] = None
