import json

import pytest

from manga_errors import FetchError


class FakeTransport:
    """Serves canned bodies by URL. A route may be a string, an exception or
    a callable taking the request params. Unknown URLs fail like a 404."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get_text(self, url, params=None, referer=None):
        self.calls.append((url, dict(params or {})))
        route = self.routes.get(url)
        if route is None:
            raise FetchError(url, 'HTTP 404')
        if isinstance(route, Exception):
            raise route
        if callable(route):
            route = route(params or {})
        if not isinstance(route, str):
            route = json.dumps(route)
        return route

    def urls(self):
        return [url for url, _ in self.calls]


@pytest.fixture
def transport():
    return FakeTransport()
