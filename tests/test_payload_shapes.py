import pytest

from payload_shapes import (
    Shape, extract_embedded_json, find_records, locate, parse_json, slice_json_literal,
)

ITEMS = [{"title": "Dragon Quest", "id": "abc"}, {"title": "Dragon Ball", "id": "def"}]


@pytest.mark.parametrize('payload', [
    ITEMS,
    {"data": ITEMS},
    {"results": ITEMS},
    {"comics": ITEMS},
    {"manga": ITEMS},
])
def test_find_records_same_items_for_every_known_wrapping(payload):
    assert find_records(payload) == ITEMS


def test_find_records_field_priority():
    payload = {"manga": [{"id": "late"}], "results": [{"id": "second"}], "data": [{"id": "first"}]}
    assert find_records(payload) == [{"id": "first"}]


def test_find_records_skips_non_array_field():
    payload = {"data": "not-an-array", "results": [{"id": "x"}]}
    assert find_records(payload) == [{"id": "x"}]


def test_find_records_root_object_as_single_record():
    payload = {"title": "One Piece", "id": "op"}
    assert find_records(payload) == [payload]
    assert find_records(payload, allow_single=False) == []


def test_find_records_unknown_payloads():
    assert find_records(None) == []
    assert find_records("text") == []
    assert find_records(42) == []


def test_parse_json_invalid_returns_none():
    assert parse_json('') is None
    assert parse_json('   ') is None
    assert parse_json('<html>oops</html>') is None
    assert parse_json('{"a": 1}') == {"a": 1}


def test_locate_nested_path_and_kind():
    payload = {"chapter": {"hash": "h", "data": ["1.png", "2.png"]}}
    assert locate(payload, [Shape(('chapter', 'data'))]) == ["1.png", "2.png"]
    assert locate(payload, [Shape(('chapter',), dict)]) == payload["chapter"]
    # present but wrong kind is skipped
    assert locate(payload, [Shape(('chapter',), list), Shape(('chapter', 'data'))]) == ["1.png", "2.png"]
    assert locate(payload, [Shape(('missing',))]) is None


def test_locate_root_shape():
    assert locate(["a"], [Shape(())]) == ["a"]
    assert locate({"a": 1}, [Shape(())]) is None


def test_slice_json_literal_stops_at_first_boundary():
    text = 'window.__DATA__ = {"chapter": [{"hid": "x", "meta": {"n": 1}}]};\nrender();'
    assert slice_json_literal(text, 'window.__DATA__') == '{"chapter": [{"hid": "x", "meta": {"n": 1}}]}'


def test_slice_json_literal_missing_boundaries():
    assert slice_json_literal('window.__DATA__ = {"a": 1}', 'window.__DATA__') is None
    assert slice_json_literal('console.log(1);', 'window.__DATA__') is None


def test_extract_embedded_json_from_script():
    html = """
    <html><head><script>var x = 1;</script>
    <script>window.__DATA__ = {"chapter": [{"hid": "h1", "title": "Start"}]};</script>
    </head><body></body></html>
    """
    assert extract_embedded_json(html, 'window.__DATA__') == {"chapter": [{"hid": "h1", "title": "Start"}]}


@pytest.mark.parametrize('html', [
    '<script>window.__DATA__ = {not json at all};</script>',
    '<script>window.__DATA__ = {"chapter": []</script>',
    '<p>window.__DATA__ = {"a": 1};</p>',
    '',
])
def test_extract_embedded_json_malformed_is_none(html):
    assert extract_embedded_json(html, 'window.__DATA__') is None
