from typing import List, Optional, Sequence, Tuple, TypeVar

from fastapi import HTTPException, Query
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from pogblog.config import PAGE_SIZE

T = TypeVar("T")


def parse_page(raw: Optional[str]) -> int:
    """Page numbers are 1-based; anything else is a client error."""
    if raw is None or raw == "":
        return 1
    try:
        page = int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid page number")
    if page < 1:
        raise HTTPException(status_code=400, detail="Invalid page number")
    return page


async def get_page(page: Optional[str] = Query(None)) -> int:
    """FastAPI dependency wrapping parse_page for the `page` query param."""
    return parse_page(page)


def page_bounds(page: int, page_size: int = PAGE_SIZE) -> Tuple[int, int]:
    return (page - 1) * page_size, page_size


def split_page(rows: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> Tuple[List[T], bool, Optional[int]]:
    """
    `rows` is the result of a query limited to page_size + 1. The extra row,
    if present, only tells us there is another page.
    """
    has_more = len(rows) > page_size
    items = list(rows[:page_size])
    return items, has_more, (page + 1 if has_more else None)


async def fetch_page(db: AsyncSession, stmt: Select, page: int, page_size: int = PAGE_SIZE, scalars: bool = True):
    offset, limit = page_bounds(page, page_size)
    result = await db.execute(stmt.offset(offset).limit(limit + 1))
    rows = result.scalars().all() if scalars else result.all()
    return split_page(rows, page, page_size)
