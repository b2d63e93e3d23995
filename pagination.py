"""
Pagination - drain an offset/limit API into one list
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

# fetch_page(offset, limit) -> (items, reported_limit, reported_total)
PageFetcher = Callable[[int, int], Tuple[Sequence[T], int, int]]


def paginate(fetch_page: PageFetcher, limit: int, offset: int = 0,
             max_pages: Optional[int] = None) -> List[T]:
    """Fetch pages until the reported total is reached.

    The offset advances by the limit the server reports, not the one asked
    for. A zero reported limit ends the loop. If any page fails, whatever was
    collected before it is returned; errors never escape.
    """
    items: List[T] = []
    pages = 0

    while max_pages is None or pages < max_pages:
        try:
            page_items, reported_limit, total = fetch_page(offset, limit)
        except Exception as e:
            logger.warning(f"Page at offset {offset} failed, keeping {len(items)} items: {e}")
            break

        pages += 1
        items.extend(page_items)

        if reported_limit <= 0:
            logger.debug(f"Reported limit {reported_limit} at offset {offset}, stopping")
            break
        offset += reported_limit
        logger.debug(f"Paginated {offset} of {total}")
        if offset >= total:
            break

    return items
