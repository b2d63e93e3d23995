"""
Chapter Ranker - best-effort newest-first ordering of free-text chapter titles
"""

import re
from typing import List, Sequence

from manga_models import DEFAULT_LANGUAGE, ChapterEntry

LABELED_NUMBER = re.compile(r'Ch\.\s*(\d+(?:\.\d+)?)')
BARE_NUMBER = re.compile(r'(\d+(?:\.\d+)?)')


def chapter_number(title: str) -> float:
    """'Ch.<n>' if present, else the first number in the title, else 0"""
    for pattern in (LABELED_NUMBER, BARE_NUMBER):
        match = pattern.search(title or '')
        if match:
            return float(match.group(1))
    return 0.0


def dedupe_chapters(chapters: Sequence[ChapterEntry]) -> List[ChapterEntry]:
    """Drop chapters whose url was already seen, keeping the first"""
    seen = set()
    unique = []
    for chapter in chapters:
        if chapter.url in seen:
            continue
        seen.add(chapter.url)
        unique.append(chapter)
    return unique


def rank_chapters(chapters: Sequence[ChapterEntry]) -> List[ChapterEntry]:
    """Dedupe, then sort by chapter number descending. Ties keep input order."""
    return sorted(dedupe_chapters(chapters), key=lambda c: chapter_number(c.title), reverse=True)


def sort_by_title(chapters: Sequence[ChapterEntry]) -> List[ChapterEntry]:
    return sorted(dedupe_chapters(chapters), key=lambda c: c.title.casefold())


def filter_by_language(chapters: Sequence[ChapterEntry], language: str) -> List[ChapterEntry]:
    """Keep chapters in `language`; an empty language or 'all' keeps everything.

    Chapters without a language tag are always kept.
    """
    wanted = (language or '').strip().lower()
    if not wanted or wanted == 'all':
        return list(chapters)
    return [c for c in chapters
            if c.language.lower() in (wanted, '', DEFAULT_LANGUAGE)]
