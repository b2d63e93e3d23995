"""
Identifier Codec - map between a source's opaque ids and its canonical URLs
"""

import logging
from typing import Optional
from urllib.parse import quote, unquote, urlparse

logger = logging.getLogger(__name__)


class IdentifierCodec:
    """URLs of the form {base}/{anchor}/{identifier} for one source.

    Codecs belong to a single source; an id decoded by one codec means
    nothing to another source.
    """

    def __init__(self, base: str, anchor: str):
        self.base = base.rstrip('/')
        self.anchor = anchor

    def encode(self, identifier: str) -> str:
        return f"{self.base}/{self.anchor}/{quote(identifier, safe='')}"

    def decode(self, url: str) -> Optional[str]:
        """Return the segment after the anchor, else the last path segment"""
        if not url:
            return None

        path = urlparse(url).path if '://' in url else url.split('?', 1)[0].split('#', 1)[0]
        segments = [s for s in path.split('/') if s]
        if not segments:
            return None

        if self.anchor in segments:
            index = segments.index(self.anchor)
            if index + 1 < len(segments):
                return unquote(segments[index + 1])
            logger.debug(f"Anchor '{self.anchor}' is the last segment of {url}")
            return None

        # Loose fallback: some listings link straight to /<id>
        logger.debug(f"No '{self.anchor}' segment in {url}, using last segment")
        return unquote(segments[-1])

    def __repr__(self) -> str:
        return f"IdentifierCodec({self.base!r}, {self.anchor!r})"
