"""
Manga Transport - single-attempt HTTP fetches shared by every source
"""

import logging
from typing import Any, Dict, Optional

import requests

from manga_config import Settings
from manga_errors import FetchError

logger = logging.getLogger(__name__)


class Transport:
    """Fetches URLs as text. Headers, proxy and timeout are fixed at construction."""

    DEFAULT_HEADERS = {
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.5',
        'DNT': '1',
        'Connection': 'keep-alive',
    }

    def __init__(self, user_agent: str, timeout: float = 30.0, proxy_url: str = '',
                 session: Optional[requests.Session] = None):
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(self.DEFAULT_HEADERS)
        self.session.headers['User-Agent'] = user_agent
        if proxy_url:
            self.session.proxies = {'http': proxy_url, 'https': proxy_url}

    @classmethod
    def from_settings(cls, settings: Settings) -> 'Transport':
        return cls(settings.user_agent, timeout=settings.timeout, proxy_url=settings.proxy_url)

    def get_text(self, url: str, params: Optional[Dict[str, Any]] = None,
                 referer: Optional[str] = None) -> str:
        """GET a URL and return the decoded body; raises FetchError on any failure"""
        headers = {'Referer': referer} if referer else None
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise FetchError(url, f"timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(url, e) from e

        if resp.status_code != 200:
            raise FetchError(resp.url or url, f"HTTP {resp.status_code}")

        logger.debug(f"Fetched {resp.url or url} ({len(resp.text)} chars)")
        return resp.text

    def close(self):
        self.session.close()
