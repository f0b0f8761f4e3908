"""Retry-with-backoff for remote calls and a bounded batch worker pool"""
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar
import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

RATE_LIMITED = 429


def is_retryable_status(status_code: int) -> bool:
    return status_code == RATE_LIMITED or status_code >= 500


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    retries: int = 3,
    backoff: float = 0.5,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying transport errors, 5xx and 429 with exponential backoff.

    Args:
        client: Client used to send the request.
        method: HTTP method.
        url: Absolute or client-relative URL.
        retries: Retries after the first attempt.
        backoff: Seconds to wait before the first retry; doubled each retry.
        **kwargs: Passed to ``client.request``.

    Returns:
        The response. Other 4xx responses are returned as-is so the caller can
        inspect the body.

    Raises:
        httpx.TransportError: The last attempt failed at the transport level.
        httpx.HTTPStatusError: The last attempt still answered 5xx or 429.
    """
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if attempt >= retries:
                logger.error(f"{method} {url} failed after {attempt + 1} attempts: {e}")
                raise
            logger.warning(f"Fetch error on {method} {url}, retrying in {backoff}s... ({e})")
        else:
            if not is_retryable_status(response.status_code):
                return response
            if attempt >= retries:
                logger.error(f"{method} {url} returned {response.status_code} after {attempt + 1} attempts")
                response.raise_for_status()
                return response
            logger.warning(f"Server returned {response.status_code} for {method} {url}, retrying in {backoff}s...")

        await asyncio.sleep(backoff)
        backoff *= 2
        attempt += 1


async def run_batch_workers(
    batches: Sequence[T],
    handler: Callable[[int, T], Awaitable[R]],
    max_workers: int = 3,
    delay_seconds: float = 0.0,
) -> List[R]:
    """Process batches with at most ``max_workers`` running at once.

    Each worker claims the next unclaimed batch index from a shared counter,
    runs ``handler(index, batch)`` and pauses ``delay_seconds`` before claiming
    another. Results are returned in batch order. The first failure cancels
    the remaining workers and is raised.
    """
    if not batches:
        return []

    results: List[Optional[R]] = [None] * len(batches)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(batches):
            index = next_index
            next_index += 1
            results[index] = await handler(index, batches[index])
            if delay_seconds:
                await asyncio.sleep(delay_seconds)

    workers = [asyncio.create_task(worker()) for _ in range(min(max_workers, len(batches)))]
    try:
        await asyncio.gather(*workers)
    except Exception:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return results
