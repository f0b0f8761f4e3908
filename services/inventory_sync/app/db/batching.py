"""Chunked insert-or-replace writes keyed by a natural/composite key"""
from typing import Any, Dict, Iterator, List, Sequence, Tuple, Type
import asyncio
import logging

from sqlalchemy.orm import Session

from app.services.errors import BatchWriteError

logger = logging.getLogger(__name__)


def chunked(items: Sequence[Any], size: int) -> Iterator[List[Any]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def row_key(row: Dict[str, Any], key_fields: Sequence[str]) -> Tuple:
    return tuple(row.get(field) for field in key_fields)


def dedupe_rows(rows: Sequence[Dict[str, Any]], key_fields: Sequence[str]) -> List[Dict[str, Any]]:
    """Collapse rows sharing a key; the last occurrence wins"""
    by_key: Dict[Tuple, Dict[str, Any]] = {}
    for row in rows:
        by_key[row_key(row, key_fields)] = row
    return list(by_key.values())


def upsert_rows(db: Session, model: Type, rows: Sequence[Dict[str, Any]], key_fields: Sequence[str]) -> int:
    """Insert rows, replacing any existing row with the same key, and commit.

    Key comparison is done in Python so that a null key part (for example an
    inventory row without a variation) matches an existing null.
    """
    rows = dedupe_rows(rows, key_fields)
    if not rows:
        return 0

    query = db.query(model)
    for field in key_fields:
        values = {row.get(field) for row in rows}
        if None not in values:
            query = query.filter(getattr(model, field).in_(values))

    existing = {
        tuple(getattr(obj, field) for field in key_fields): obj
        for obj in query.all()
    }

    try:
        for row in rows:
            current = existing.get(row_key(row, key_fields))
            if current is not None:
                for field, value in row.items():
                    setattr(current, field, value)
            else:
                db.add(model(**row))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(rows)


async def write_in_batches(
    db: Session,
    model: Type,
    rows: Sequence[Dict[str, Any]],
    key_fields: Sequence[str],
    batch_size: int = 100,
    delay_seconds: float = 0.0,
) -> int:
    """Upsert ``rows`` in sequential chunks with a fixed pause between chunks.

    There is no transaction across chunks: when one fails the error is logged
    and raised as BatchWriteError, and earlier chunks stay committed.
    """
    table = model.__tablename__
    chunks = list(chunked(dedupe_rows(rows, key_fields), batch_size))
    written = 0

    for index, chunk in enumerate(chunks, start=1):
        try:
            written += upsert_rows(db, model, chunk, key_fields)
        except Exception as e:
            logger.error(f"Error upserting {table} batch {index}/{len(chunks)}: {e}", exc_info=True)
            raise BatchWriteError(table, index, len(chunks), e) from e
        logger.info(f"Upserted {table} batch {index}/{len(chunks)} ({len(chunk)} rows)")
        if delay_seconds and index < len(chunks):
            await asyncio.sleep(delay_seconds)

    return written
