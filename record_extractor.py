"""
Record Extractor - turn one raw JSON item into a CatalogEntry or ChapterEntry

Each logical attribute is looked up through a ranked list of Field candidates.
The first candidate that is present with the expected kind of value wins, even
if its value turns out to be empty; later candidates are only consulted when
an earlier one is missing or has the wrong shape.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from manga_models import CatalogEntry, ChapterEntry, DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

TEXT = 'text'
OBJECT = 'object'

ANY_KEY = '*'
NULL_SENTINEL = 'null'
ONESHOT_TITLE = 'Oneshot'


@dataclass(frozen=True)
class Field:
    """One candidate location for an attribute.

    `path` is a dotted key path into the item. TEXT accepts a string or a
    number (numbers are stringified). OBJECT expects a dict, or a list of
    dicts, and looks one level down for the first of `inner` holding text;
    '*' in `inner` means any text value.
    """
    path: str
    kind: str = TEXT
    inner: Tuple[str, ...] = ()


_MISSING = object()


def _walk(item: Any, path: str):
    node = item
    for key in path.split('.'):
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def _drill(container: Dict[str, Any], inner: Sequence[str]) -> Optional[str]:
    for key in inner:
        if key == ANY_KEY:
            for value in container.values():
                text = _as_text(value)
                if text is not None:
                    return text
        elif key in container:
            text = _as_text(container[key])
            if text is not None:
                return text
    return None


def resolve(item: Any, candidates: Sequence[Field]) -> Optional[str]:
    """Return the value of the first matching candidate, or None if none match"""
    for field in candidates:
        value = _walk(item, field.path)
        if value is _MISSING:
            continue

        if field.kind == TEXT:
            text = _as_text(value)
            if text is not None:
                return text
        elif field.kind == OBJECT:
            nested = [value] if isinstance(value, dict) else value if isinstance(value, list) else []
            for container in nested:
                if isinstance(container, dict):
                    text = _drill(container, field.inner)
                    if text is not None:
                        return text

        logger.debug(f"Candidate {field.path!r} present but not {field.kind}, skipping")
    return None


def _clean_part(value: Optional[str]) -> str:
    if value is None:
        return ''
    value = value.strip()
    return '' if value == NULL_SENTINEL else value


def build_chapter_name(volume: Optional[str], chapter: Optional[str], subtitle: Optional[str]) -> str:
    """Combine volume, chapter number and subtitle into a display title"""
    volume, chapter, subtitle = _clean_part(volume), _clean_part(chapter), _clean_part(subtitle)

    if volume and chapter:
        prefix = f"Vol. {volume} Ch. {chapter}"
    elif volume:
        prefix = f"Volume {volume}"
    elif chapter:
        prefix = f"Chapter {chapter}"
    else:
        prefix = ''

    if prefix and subtitle:
        return f"{prefix} - {subtitle}"
    return prefix or subtitle or ONESHOT_TITLE


@dataclass(frozen=True)
class CatalogFields:
    title: Sequence[Field]
    identifier: Sequence[Field]
    cover: Sequence[Field] = ()
    description: Sequence[Field] = ()


@dataclass(frozen=True)
class ChapterFields:
    identifier: Sequence[Field]
    subtitle: Sequence[Field] = ()
    volume: Sequence[Field] = ()
    chapter: Sequence[Field] = ()
    language: Sequence[Field] = ()


def _names(candidates: Sequence[Field]) -> str:
    return ', '.join(f.path for f in candidates) or 'none'


def extract_catalog_entry(item: Any, fields: CatalogFields, source: str,
                          link: Callable[[str], str],
                          cover_of: Optional[Callable[[Dict[str, Any], str], str]] = None
                          ) -> Optional[CatalogEntry]:
    """Build a CatalogEntry from one raw item, or None if title or identifier is missing.

    `link` turns the resolved identifier into the entry's URL; `cover_of`
    computes a cover URL when the candidates leave it empty.
    """
    if not isinstance(item, dict):
        logger.debug(f"Rejected {type(item).__name__} item: not an object")
        return None

    title = resolve(item, fields.title)
    if not title:
        logger.debug(f"Rejected item: no title among [{_names(fields.title)}]")
        return None

    identifier = resolve(item, fields.identifier)
    if not identifier:
        logger.debug(f"Rejected {title!r}: no identifier among [{_names(fields.identifier)}]")
        return None

    cover = resolve(item, fields.cover) or ''
    if not cover and cover_of:
        cover = cover_of(item, identifier) or ''

    return CatalogEntry(
        title=title,
        url=link(identifier),
        cover_url=cover,
        source=source,
        description=resolve(item, fields.description) or ''
    )


def extract_chapter_entry(item: Any, fields: ChapterFields,
                          link: Callable[[str], str],
                          default_language: str = DEFAULT_LANGUAGE,
                          scanlator_of: Optional[Callable[[Dict[str, Any]], str]] = None
                          ) -> Optional[ChapterEntry]:
    """Build a ChapterEntry from one raw item, or None if it has no identifier"""
    if not isinstance(item, dict):
        logger.debug(f"Rejected {type(item).__name__} chapter item: not an object")
        return None

    identifier = resolve(item, fields.identifier)
    if not identifier:
        logger.debug(f"Rejected chapter: no identifier among [{_names(fields.identifier)}]")
        return None

    title = build_chapter_name(
        resolve(item, fields.volume),
        resolve(item, fields.chapter),
        resolve(item, fields.subtitle)
    )
    language = _clean_part(resolve(item, fields.language)) or default_language

    return ChapterEntry(
        title=title,
        url=link(identifier),
        language=language,
        scanlator=scanlator_of(item) if scanlator_of else ''
    )
