"""
Book library endpoints.

GET  /api/books            - list with language / format / tags / search filters
GET  /api/books/{book_id}  - one book
POST /api/books            - add a book (creators only)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import require_creator
from app.models.database_models import Book, BookFormat, User
from app.models.schemas import BookCreate, BookResponse
from app.services.search_service import book_to_dict
from app.utils.helpers import tags_overlap

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[BookResponse])
async def list_books(
    language: Optional[str] = Query(None),
    format: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma-separated; any overlap matches"),
    search: Optional[str] = Query(None, description="Substring of title, author or description"),
    db: AsyncSession = Depends(get_db),
) -> List[BookResponse]:
    """All books, newest first."""
    stmt = select(Book).order_by(Book.created_at.desc())
    if language and language != "all":
        stmt = stmt.where(Book.language == language)
    if format and format != "all":
        try:
            stmt = stmt.where(Book.format == BookFormat(format))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid format '{format}'")
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Book.title.ilike(pattern),
                Book.author.ilike(pattern),
                Book.description.ilike(pattern),
            )
        )

    books = (await db.execute(stmt)).scalars().all()

    wanted = [t.strip() for t in tags.split(",") if t.strip()] if tags else []
    if wanted:
        books = [b for b in books if tags_overlap(b.tags, wanted)]

    return [BookResponse(**book_to_dict(b)) for b in books]


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, db: AsyncSession = Depends(get_db)) -> BookResponse:
    book = await db.get(Book, book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return BookResponse(**book_to_dict(book))


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    body: BookCreate,
    creator: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db),
) -> BookResponse:
    book = Book(
        title=body.title,
        author=body.author,
        description=body.description,
        tags=body.tags,
        language=body.language,
        format=BookFormat(body.format.value),
        difficulty_level=body.difficulty_level.value if body.difficulty_level else None,
        created_by=creator.id,
    )
    db.add(book)
    await db.flush()
    await db.refresh(book)

    logger.info("Created book id=%s title=%r by user=%s", book.id, book.title, creator.id)
    return BookResponse(**book_to_dict(book))
