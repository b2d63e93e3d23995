"""
Manga Models - Normalized records returned by every manga source
"""

import dataclasses
from dataclasses import dataclass
from typing import Iterable, Tuple

DEFAULT_LANGUAGE = 'unknown'


@dataclass(frozen=True)
class CatalogEntry:
    """One manga title as listed by a source (search results, latest list)"""
    title: str
    url: str
    cover_url: str = ''
    source: str = ''
    description: str = ''

    def __str__(self) -> str:
        return self.title


@dataclass(frozen=True)
class ChapterEntry:
    """One chapter of a title. `url` is only meaningful to the source that produced it."""
    title: str
    url: str
    language: str = DEFAULT_LANGUAGE
    scanlator: str = ''
    pages: Tuple[str, ...] = ()

    def with_pages(self, pages: Iterable[str]) -> 'ChapterEntry':
        """Return a copy with the page image list filled in"""
        return dataclasses.replace(self, pages=tuple(pages))

    def __str__(self) -> str:
        return self.title
