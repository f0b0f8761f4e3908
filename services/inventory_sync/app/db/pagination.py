"""Offset-range paging over database tables.

Every downstream count (stock on hand, sales totals) is only as complete as
these loops, so a failing page propagates instead of returning a partial
result.
"""
from typing import Callable, List, Sequence, TypeVar
import logging

from sqlalchemy import Select
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 1000


def paginate(fetch_page: Callable[[int, int], Sequence[T]], page_size: int = DEFAULT_PAGE_SIZE) -> List[T]:
    """Collect every row by requesting consecutive offset ranges.

    Args:
        fetch_page: Callable taking (offset, limit) and returning at most
            ``limit`` rows starting at ``offset``.
        page_size: Rows requested per page.

    Returns:
        All rows, in page order. Paging continues while a page comes back
        full and stops on the first short or empty page.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    rows: List[T] = []
    offset = 0
    page_number = 0
    while True:
        page = list(fetch_page(offset, page_size))
        page_number += 1
        rows.extend(page)
        logger.debug(f"Fetched page {page_number} ({len(page)} rows, offset {offset})")
        if len(page) < page_size:
            break
        offset += page_size
    return rows


def fetch_all_rows(db: Session, stmt: Select, page_size: int = DEFAULT_PAGE_SIZE, scalars: bool = True) -> list:
    """Run ``stmt`` page by page and return all rows.

    ``stmt`` must carry a deterministic ORDER BY (usually the primary key),
    otherwise rows can shift between pages.
    """
    def fetch_page(offset: int, limit: int):
        result = db.execute(stmt.offset(offset).limit(limit))
        return result.scalars().all() if scalars else result.all()

    return paginate(fetch_page, page_size)
