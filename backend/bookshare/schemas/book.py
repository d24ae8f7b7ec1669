"""
Book request/response schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    """Add a book to the caller's collection."""
    title: str = Field(..., max_length=300, description="Book title")
    author: str = Field(..., max_length=200, description="Book author")
    genre: Optional[str] = Field(None, max_length=100, description="Optional genre")


class BookUpdate(BaseModel):
    """Rename / re-attribute an owned book."""
    new_title: str = Field(..., max_length=300, description="New title")
    new_author: str = Field(..., max_length=200, description="New author")
    new_genre: str = Field(default="", max_length=100, description="New genre")


class BookResponse(BaseModel):
    """Book response."""
    id: str = Field(..., description="Book ID")
    title: str
    author: str
    genre: Optional[str] = None


class BookEditResult(BaseModel):
    """Outcome of editing an owned book."""
    book: BookResponse
    merged: bool = Field(..., description="True if the edit redirected ownership to an existing book")
    previous_book_deleted: bool = Field(
        default=False,
        description="True if the original book lost its last owner and was deleted"
    )
