from pagination import paginate


class FakePages:
    """Serves items in pages, reporting its own limit and total"""

    def __init__(self, items, reported_limit, fail_at=None):
        self.items = items
        self.reported_limit = reported_limit
        self.fail_at = fail_at
        self.offsets = []

    def __call__(self, offset, limit):
        self.offsets.append(offset)
        if self.fail_at is not None and offset >= self.fail_at:
            raise ConnectionError('boom')
        page = self.items[offset:offset + max(self.reported_limit, 0)]
        return page, self.reported_limit, len(self.items)


def test_accumulates_until_total():
    pages = FakePages(list(range(5)), reported_limit=2)
    assert paginate(pages, limit=2) == [0, 1, 2, 3, 4]
    assert pages.offsets == [0, 2, 4]


def test_advances_by_reported_limit():
    pages = FakePages(list(range(5)), reported_limit=2)
    assert paginate(pages, limit=500) == [0, 1, 2, 3, 4]
    assert pages.offsets == [0, 2, 4]


def test_zero_limit_stops():
    pages = FakePages(list(range(5)), reported_limit=0)
    assert paginate(pages, limit=2) == []
    assert pages.offsets == [0]


def test_failure_keeps_partial_result():
    pages = FakePages(list(range(6)), reported_limit=2, fail_at=4)
    assert paginate(pages, limit=2) == [0, 1, 2, 3]
    assert pages.offsets == [0, 2, 4]


def test_failure_on_first_page_is_empty():
    pages = FakePages(list(range(6)), reported_limit=2, fail_at=0)
    assert paginate(pages, limit=2) == []


def test_empty_total():
    pages = FakePages([], reported_limit=2)
    assert paginate(pages, limit=2) == []
    assert pages.offsets == [0]


def test_max_pages():
    pages = FakePages(list(range(10)), reported_limit=2)
    assert paginate(pages, limit=2, max_pages=2) == [0, 1, 2, 3]
