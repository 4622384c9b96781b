"""Offset-pagination traversal.

Collects every item of a resource by requesting consecutive offset pages until
the reported `total` is reached. Pages are fetched strictly one after another:
`total` is only known once the first page is back.

The timeout is cooperative. It is checked before each page request and never
interrupts a request already in flight; per-request timeouts belong to the HTTP
client configuration.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from core.domain.models import pagination_total
from core.errors import TraversalTimeoutError
from core.interfaces.fetcher import OffsetPageFetcher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50


async def traverse_offset_pages(
    fetch_page: OffsetPageFetcher,
    limit: int = DEFAULT_PAGE_LIMIT,
    timeout_ms: float | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> list[dict[str, Any]]:
    """Concatenate every page returned by `fetch_page(start, limit)`.

    Stops when the number of collected items reaches the reported total. When
    the server reports no total, paging continues while pages come back full and
    ends on the first short page. An empty page always ends the traversal.

    Raises:
        TraversalTimeoutError: `timeout_ms` elapsed before the next page request.
    """

    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    if timeout_ms is not None and timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be positive, got {timeout_ms!r}")

    results: list[dict[str, Any]] = []
    start = 0
    collected = 0
    warned = False
    started = clock()

    while True:
        if timeout_ms is not None:
            elapsed_ms = (clock() - started) * 1000.0
            if elapsed_ms > timeout_ms:
                raise TraversalTimeoutError(
                    timeout_ms=timeout_ms,
                    elapsed_ms=elapsed_ms,
                    collected=collected,
                )

        page = await fetch_page(start, limit)
        results.extend(page)
        reported = pagination_total(page.pagination)
        collected += len(page)
        start += limit
        logger.debug(
            "Fetched page start=%s limit=%s items=%s total=%s",
            start - limit,
            limit,
            len(page),
            reported,
        )

        if not page:
            break
        if reported is None:
            if not warned:
                logger.warning(
                    "Server reported no pagination total; paging until a short page is returned"
                )
                warned = True
            if len(page) < limit:
                break
            continue

        if collected >= reported:
            break

    return results
