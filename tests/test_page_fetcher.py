import json

import pytest
import requests

from optsnap.errors import UpstreamConnectionError, UpstreamHTTPError
from optsnap.page_fetcher import PageFetcher

from conftest import FakeResponse, FakeSession

P1 = "http://terminal/v3/option/snapshot/quote"
P2 = "http://terminal/v3/page/2"
P3 = "http://terminal/v3/page/3"


def _lines(*records):
    return "\n".join(json.dumps(r) for r in records)


def test_three_page_walk_header_then_body_then_null():
    session = FakeSession({
        P1: FakeResponse(
            {"header": {"format": ["bid"], "next_page": "null"},
             "response": [{"contract": {"strike": 1}}, {"contract": {"strike": 2}}]},
            headers={"Next-Page": P2},
        ),
        P2: FakeResponse(_lines(
            {"header": {"format": ["other"], "next_page": P3}},
            {"contract": {"strike": 3}},
        )),
        P3: FakeResponse(
            {"header": {"next_page": "null"}, "response": [{"contract": {"strike": 4}}]},
            headers={"Next-Page": "null"},
        ),
    })
    result = PageFetcher(session=session).fetch_all(P1, {"symbol": "SPY"})

    assert result.pages == 3
    assert [i["contract"]["strike"] for i in result.items] == [1, 2, 3, 4]
    # Only the first page's header survives
    assert result.header["format"] == ["bid"]
    assert [url for url, _ in session.calls] == [P1, P2, P3]


def test_first_request_carries_params_later_pages_do_not():
    session = FakeSession({
        P1: FakeResponse({"response": [1]}, headers={"Next-Page": P2}),
        P2: FakeResponse({"response": [2]}),
    })
    PageFetcher(session=session).fetch_all(P1, {"symbol": "SPY"})

    assert session.calls[0][1] == {"symbol": "SPY"}
    assert session.calls[1][1] == {}


def test_http_header_takes_priority_over_body():
    session = FakeSession({
        P1: FakeResponse({"header": {"next_page": P3}, "response": [1]}, headers={"Next-Page": P2}),
        P2: FakeResponse({"response": [2]}),
    })
    result = PageFetcher(session=session).fetch_all(P1)

    assert result.items == [1, 2]
    assert session.calls_to("/page/3") == 0


def test_relative_cursor_resolves_against_current_url():
    session = FakeSession({
        P1: FakeResponse({"response": [1]}, headers={"Next-Page": "/v3/page/2"}),
        P2: FakeResponse({"response": [2]}),
    })
    result = PageFetcher(session=session).fetch_all(P1)
    assert result.items == [1, 2]


def test_custom_header_name():
    session = FakeSession({
        P1: FakeResponse({"response": [1]}, headers={"X-Next": P2}),
        P2: FakeResponse({"response": [2]}),
    })
    result = PageFetcher(session=session, next_page_header="X-Next").fetch_all(P1)
    assert result.pages == 2


def test_single_page_without_any_signal():
    session = FakeSession({P1: FakeResponse({"strike": [100], "right": ["C"]})})
    result = PageFetcher(session=session).fetch_all(P1)

    assert result.pages == 1
    assert result.items == [{"strike": [100], "right": ["C"]}]
    assert result.header is None


def test_http_error_aborts_walk_with_bounded_excerpt():
    session = FakeSession({
        P1: FakeResponse({"response": [1]}, headers={"Next-Page": P2}),
        P2: FakeResponse("E" * 5000, status_code=500),
    })
    with pytest.raises(UpstreamHTTPError) as exc:
        PageFetcher(session=session, excerpt_chars=100).fetch_all(P1)

    assert exc.value.status_code == 500
    assert exc.value.url == P2
    assert len(exc.value.body_excerpt) == 103
    assert "500" in str(exc.value)


def test_transport_error_is_wrapped():
    session = FakeSession({P1: requests.exceptions.ConnectionError("refused")})
    with pytest.raises(UpstreamConnectionError) as exc:
        PageFetcher(session=session).fetch_all(P1)
    assert isinstance(exc.value.__cause__, requests.exceptions.ConnectionError)
