"""
Payload Shapes - locate the useful part of a JSON or HTML response

Sources change their payloads without notice, so nothing here raises on an
unexpected shape. A miss is returned as None (or an empty list) and logged;
callers decide what fallback to try next.
"""

import json
import re
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Field names that have held record arrays in the wild, highest priority first
RECORD_ARRAY_FIELDS = ('data', 'results', 'comics', 'manga')


@dataclass(frozen=True)
class Shape:
    """A candidate location: a key path from the root and the expected container type"""
    path: Tuple[str, ...]
    kind: type = list

    def describe(self) -> str:
        return '.'.join(self.path) or '<root>'


def parse_json(text: Optional[str]) -> Optional[Any]:
    """Decode JSON text, returning None for empty or invalid input"""
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        logger.debug(f"Response is not JSON: {e}")
        return None


def locate(payload: Any, shapes: Sequence[Shape]) -> Optional[Any]:
    """Return the substructure at the first shape whose path exists with the expected type"""
    for shape in shapes:
        node = payload
        for key in shape.path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if node is not None and isinstance(node, shape.kind):
            return node
    logger.debug(f"No known shape matched (tried {', '.join(s.describe() for s in shapes)})")
    return None


def find_records(payload: Any, fields: Sequence[str] = RECORD_ARRAY_FIELDS,
                 allow_single: bool = True) -> List[Any]:
    """Find the list of raw records in a decoded JSON payload.

    Tries, in order: the root itself as an array, an array under each of
    `fields`, and finally (when allow_single) the root object as one record.
    """
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        records = locate(payload, [Shape((name,), list) for name in fields])
        if records is not None:
            return records
        if allow_single:
            return [payload]

    logger.debug(f"No record array found in {type(payload).__name__} payload")
    return []


def script_texts(html: str, marker: str) -> List[str]:
    """Return the text of every <script> block containing `marker`"""
    soup = BeautifulSoup(html, 'html.parser')
    found = []
    for script in soup.find_all('script'):
        text = script.string or script.get_text()
        if text and marker in text:
            found.append(text)
    return found


def slice_json_literal(text: str, marker: str) -> Optional[str]:
    """Cut the JSON object assigned to `marker` out of script text.

    The literal starts after `<marker> =` and ends at the first `};` that
    follows it. Returns None when either boundary is missing.
    """
    prefix = re.search(re.escape(marker) + r'\s*=\s*', text)
    if not prefix:
        return None
    start = prefix.end()
    end = text.find('};', start)
    if end == -1:
        logger.debug(f"Found {marker} but no closing '}};' boundary")
        return None
    return text[start:end + 1]


def extract_embedded_json(html: str, marker: str) -> Optional[Any]:
    """Parse the JSON blob assigned to `marker` inside an HTML document's scripts.

    Only the first script mentioning the marker is considered. Never raises; a
    missing script, a missing boundary or an unparseable slice all give None
    so the caller can fall back to plain HTML node matching.
    """
    scripts = script_texts(html, marker) if html else []
    if not scripts:
        logger.debug(f"No script block mentions {marker}")
        return None

    literal = slice_json_literal(scripts[0], marker)
    if literal is None:
        logger.debug(f"Could not slice {marker} out of its script block")
        return None
    try:
        return json.loads(literal)
    except ValueError as e:
        logger.warning(f"Embedded {marker} slice is not valid JSON: {e}")
        return None
