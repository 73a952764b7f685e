import json

import pytest

from optsnap.errors import UpstreamParseError
from optsnap.normalizer import PayloadEncoding, normalize_response


def test_envelope_with_response_array_and_header():
    body = json.dumps({
        "header": {"format": ["ms_of_day", "bid"], "next_page": "null"},
        "response": [{"contract": {"strike": 100}}, {"contract": {"strike": 105}}],
    })
    page = normalize_response(body)

    assert page.encoding is PayloadEncoding.ENVELOPE
    assert len(page.items) == 2
    assert page.header["format"] == ["ms_of_day", "bid"]


def test_columnar_object_becomes_single_item():
    body = json.dumps({"strike": [100, 105], "right": ["C", "C"], "bid": [1.0, 0.2]})
    page = normalize_response(body)

    assert page.encoding is PayloadEncoding.ENVELOPE
    assert page.items == [{"strike": [100, 105], "right": ["C", "C"], "bid": [1.0, 0.2]}]
    assert page.header is None


def test_top_level_array():
    page = normalize_response("[20250919, 20250926]")
    assert page.items == [20250919, 20250926]


def test_top_level_next_page_is_kept():
    page = normalize_response(json.dumps({"response": [], "next_page": "http://x/p2"}))
    assert page.next_page == "http://x/p2"


def test_line_delimited_records():
    body = "\n".join([
        json.dumps({"header": {"format": ["bid", "ask"]}}),
        json.dumps({"contract": {"strike": 100, "right": "C"}, "bid": 1.0}),
        "",
        json.dumps({"contract": {"strike": 100, "right": "P"}, "bid": 0.5}),
        json.dumps({"header": {"next_page": "null"}}),
    ])
    page = normalize_response(body)

    assert page.encoding is PayloadEncoding.LINES
    assert [i["contract"]["right"] for i in page.items] == ["C", "P"]
    # Last header line wins
    assert page.header == {"next_page": "null"}


def test_malformed_line_is_dropped_silently():
    body = "\n".join([
        json.dumps({"contract": {"strike": 100, "right": "C"}}),
        '{"contract": {"strike": 105, "right": ',
        json.dumps({"contract": {"strike": 110, "right": "C"}}),
        json.dumps({"unrelated": True}),
        json.dumps({"contract": {"strike": 115, "right": "P"}}),
    ])
    page = normalize_response(body)

    assert [i["contract"]["strike"] for i in page.items] == [100, 110, 115]


def test_blank_body_is_an_empty_page():
    page = normalize_response("   \n")
    assert page.items == []
    assert page.header is None


def test_garbage_body_raises_parse_error():
    with pytest.raises(UpstreamParseError) as exc:
        normalize_response("<html>" + "x" * 1000 + "</html>", url="http://x", excerpt_chars=50)
    assert len(exc.value.body_excerpt) <= 53


def test_json_scalar_is_not_a_payload():
    with pytest.raises(UpstreamParseError):
        normalize_response('"just a string"')


@pytest.mark.parametrize("body", ["{}", '{"foo": 1}', '{\n  "foo": 1\n}'])
def test_shapeless_object_is_an_empty_page(body):
    page = normalize_response(body)
    assert page.items == []
    assert page.header is None


def test_shapeless_object_matches_line_stream_of_such_records():
    single = normalize_response('{"foo": 1}')
    stream = normalize_response('{"foo": 1}\n{"bar": 2}')
    assert single.items == stream.items == []
    assert single.encoding is stream.encoding is PayloadEncoding.LINES
