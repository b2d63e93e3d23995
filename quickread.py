#!/usr/bin/env python3
"""
QuickRead command line - browse manga sources from a terminal

    quickread sources
    quickread search MangaDex "dragon"
    quickread chapters MangaDex https://mangadex.org/title/<id> --lang en
    quickread pages MangaDex https://mangadex.org/chapter/<id>

The sources themselves never raise; this module does the caller-side checks
(known source, non-empty query) and prints whatever comes back.
"""

import sys
import json
import logging
import argparse
import dataclasses
from typing import Any, List, Optional, Sequence

from chapter_ranker import filter_by_language
from manga_config import configure_logging, load_settings
from manga_errors import UnknownSourceError
from manga_models import CatalogEntry, ChapterEntry
from manga_sources import SOURCES, build_registry, get_source

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog='quickread', description='Search manga sources and list chapters and pages')
    ap.add_argument('--env-file', help='Path to a .env file (default: search from the current directory)')
    ap.add_argument('--json', action='store_true', help='Print results as JSON')
    ap.add_argument('--log-level', help='Override QUICKREAD_LOG_LEVEL (DEBUG, INFO, WARNING...)')
    sub = ap.add_subparsers(dest='command')
    sub.required = True

    sub.add_parser('sources', help='List available sources')

    p = sub.add_parser('search', help='Search a source for titles')
    p.add_argument('source')
    p.add_argument('query')

    p = sub.add_parser('latest', help='Popular titles on a source')
    p.add_argument('source')

    p = sub.add_parser('chapters', help='List chapters of a title')
    p.add_argument('source')
    p.add_argument('url', help='Title URL as printed by search/latest')
    p.add_argument('--lang', default='', help="Only chapters in this language ('all' for every language)")

    p = sub.add_parser('pages', help='List page images of a chapter')
    p.add_argument('source')
    p.add_argument('url', help='Chapter URL as printed by chapters')
    return ap


def _print_records(records: Sequence[Any], as_json: bool):
    if as_json:
        print(json.dumps([dataclasses.asdict(r) if dataclasses.is_dataclass(r) else r for r in records],
                         ensure_ascii=False, indent=2))
        return
    for record in records:
        if isinstance(record, CatalogEntry):
            print(f"{record.title}\t{record.url}")
        elif isinstance(record, ChapterEntry):
            print(f"{record.title}\t{record.language}\t{record.url}")
        else:
            print(record)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.env_file)
    configure_logging(args.log_level or settings.log_level)

    if args.command == 'sources':
        for name in SOURCES:
            print(name)
        return 0

    registry = build_registry(settings)
    try:
        source = get_source(registry, args.source)
    except UnknownSourceError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2

    if args.command == 'search':
        query = args.query.strip()
        if not query:
            print("[!] Please enter a search term.", file=sys.stderr)
            return 2
        records = source.search(query)
    elif args.command == 'latest':
        records = source.latest()
    elif args.command == 'chapters':
        entry = CatalogEntry(title=args.url, url=args.url, source=source.name)
        records = filter_by_language(source.list_chapters(entry), args.lang)
    else:
        chapter = ChapterEntry(title=args.url, url=args.url)
        chapter = chapter.with_pages(source.list_page_images(chapter))
        records = list(chapter.pages)

    if not records:
        print(f"No results from {source.name}.", file=sys.stderr)
        return 0

    _print_records(records, args.json)
    return 0


if __name__ == '__main__':
    sys.exit(main())
