"""
Exhaustive ``first``/``skip`` pagination over subgraph collections.
"""

from typing import Any, Awaitable, Callable, List

from shared.logging import get_logger


logger = get_logger("gateway.pagination")

PageFetcher = Callable[[int, int], Awaitable[List[Any]]]


async def paginate(fetch_page: PageFetcher, *, page_size: int = 1000, max_rows: int = 10000) -> List[Any]:
    """
    Collect every row of a paginated collection.

    Pages are requested sequentially with ``skip`` growing by ``page_size``.
    The loop stops on the first short page or once ``skip`` reaches
    ``max_rows``. Any exception from ``fetch_page`` aborts the whole
    collection; partial results are never returned.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    rows: List[Any] = []
    skip = 0
    pages = 0

    while skip < max_rows:
        page = await fetch_page(page_size, skip)
        pages += 1
        rows.extend(page)
        if len(page) < page_size:
            break
        skip += page_size
    else:
        logger.warning("Pagination stopped at safety cap", max_rows=max_rows, rows=len(rows))

    logger.debug("Pagination complete", pages=pages, rows=len(rows))
    return rows
