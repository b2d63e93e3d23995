"""
Errors raised inside the source layer.

Nothing here crosses a source's public methods: every operation catches these,
logs them and returns an empty result instead.
"""


class SourceError(Exception):
    """Base error for manga sources"""


class FetchError(SourceError):
    """Network failure, timeout or bad HTTP status"""

    def __init__(self, url: str, reason):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class PayloadError(SourceError):
    """A response body could not be decoded where decoding is mandatory"""


class UnknownSourceError(SourceError, KeyError):
    """No source registered under the requested name"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else 'unknown source'
