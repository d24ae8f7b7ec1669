"""
Books router for the caller's collection.
"""
from fastapi import APIRouter, Depends

from bookshare.database.transactions import DocumentStore
from bookshare.dependencies.auth import CurrentUser
from bookshare.dependencies.store import get_document_store
from bookshare.schemas.book import BookCreate, BookEditResult, BookResponse, BookUpdate
from bookshare.schemas.common import ApiResponse
from bookshare.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/book", tags=["Books"])


async def get_catalog_service(
    store: DocumentStore = Depends(get_document_store),
) -> CatalogService:
    """Dependency to get CatalogService instance."""
    return CatalogService(store)


@router.get(
    "",
    response_model=ApiResponse[list[BookResponse]],
    summary="List own books",
)
async def list_books(
    current_user: CurrentUser,
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """List the books in the caller's collection."""
    books = await catalog_service.list_owned_books(current_user.id)
    return ApiResponse(message="Books fetched", data=books)


@router.post(
    "",
    response_model=ApiResponse[BookResponse],
    summary="Add book",
)
async def add_book(
    body: BookCreate,
    current_user: CurrentUser,
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """
    Add a book to the caller's collection.

    - **title**, **author**: Required; matched case-insensitively against
      the catalog so the same book is never stored twice
    - **genre**: Optional
    """
    book = await catalog_service.add_owned_book(current_user.id, body)
    return ApiResponse(message="Book added successfully", data=book)


@router.patch(
    "/{book_id}",
    response_model=ApiResponse[BookEditResult],
    summary="Edit owned book",
)
async def edit_book(
    book_id: str,
    body: BookUpdate,
    current_user: CurrentUser,
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """
    Rename an owned book.

    Renaming to the title and author of another catalog entry merges the
    caller's copy into that entry.
    """
    result = await catalog_service.edit_owned_book(current_user.id, book_id, body)
    return ApiResponse(message="Book updated successfully", data=result)


@router.delete(
    "/{book_id}",
    response_model=ApiResponse[None],
    summary="Remove owned book",
)
async def delete_book(
    book_id: str,
    current_user: CurrentUser,
    catalog_service: CatalogService = Depends(get_catalog_service),
):
    """Remove a book from the caller's collection."""
    await catalog_service.remove_owned_book(current_user.id, book_id)
    return ApiResponse(message="Book removed successfully")
