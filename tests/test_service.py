from datetime import date

import pytest

from optsnap.errors import ValidationError
from optsnap.service import OptionsService

from conftest import FakeResponse, FakeSession

CHAIN_ROUTES = {
    "/option/snapshot/quote": FakeResponse({"strike": [100], "right": ["C"], "bid": [1.0], "ask": [1.1]}),
    "/option/snapshot/open_interest": FakeResponse({"strike": [100], "right": ["C"], "open_interest": [42]}),
    "/option/snapshot/ohlc": FakeResponse({"strike": [], "right": []}),
    "/option/snapshot/greeks/implied_volatility": FakeResponse(
        {"strike": [100], "right": ["C"], "implied_vol": [0.2], "underlying_price": [100.4]}),
}


@pytest.fixture
def service(upstream_settings, service_settings):
    """Factory for an OptionsService over a FakeSession."""
    made = []

    def _make(routes):
        session = FakeSession(routes)
        svc = OptionsService(upstream=upstream_settings, settings=service_settings, session=session)
        made.append(svc)
        return svc, session

    yield _make
    for svc in made:
        svc.close()


def test_health(service):
    svc, _ = service({})
    out = svc.health()
    assert out['ok'] is True
    assert 'time' in out


def test_get_options_chain_cleans_symbol(service):
    svc, session = service(dict(CHAIN_ROUTES))
    chain = svc.get_options_chain("  spy ", " 2025-09-19 ")

    assert chain.symbol == "SPY"
    out = chain.to_dict()
    assert out['row_count'] == 1
    assert out['rows'][0]['call_oi'] == 42
    assert out['underlying'] == {'price': 100.4, 'timestamp': None}
    assert session.calls[0][1]["symbol"] == "SPY"


def test_repeat_calls_share_the_cache(service):
    svc, session = service(dict(CHAIN_ROUTES))
    svc.get_options_chain("SPY", "20250919")
    svc.get_options_chain("SPY", "20250919")
    assert len(session.calls) == 4


@pytest.mark.parametrize("symbol, expiration", [
    ("", "20250919"),
    ("SPY1", "20250919"),
    ("SPY", None),
    ("SPY", "19-09-2025"),
])
def test_bad_input_never_reaches_upstream(service, symbol, expiration):
    svc, session = service(dict(CHAIN_ROUTES))
    with pytest.raises(ValidationError):
        svc.get_options_chain(symbol, expiration)
    with pytest.raises(ValidationError):
        svc.get_legacy_chain(symbol, expiration)
    assert session.calls == []


def test_get_expirations_uses_configured_timezone(service, monkeypatch):
    svc, _ = service({
        "/option/list/expirations": FakeResponse({"expiration": ["2025-09-12", "2025-09-19"]}),
    })
    seen = []
    monkeypatch.setattr(svc.expirations, "today", lambda tz: seen.append(tz) or date(2025, 9, 13))

    result = svc.get_expirations("spy")

    assert seen == ["America/New_York"]
    assert [e.label for e in result] == ["Sep 19"]


def test_get_expirations_rejects_unknown_timezone_before_fetching(service):
    svc, session = service({
        "/option/list/expirations": FakeResponse({"expiration": ["2025-09-19"]}),
    })
    with pytest.raises(ValidationError):
        svc.get_expirations("SPY", tz="Not/AZone")
    assert session.calls == []


def test_legacy_chain_uses_legacy_strike_scale(service):
    svc, _ = service({
        "/bulk_snapshot/option/quote": FakeResponse({"response": [
            {"contract": {"strike": 20000, "right": "C"},
             "ticks": [[34200000, 10, 1, 1.0, 50, 12, 1, 1.1, 50, 20250912]]},
        ]}),
    })
    chain = svc.get_legacy_chain("SPY", "20250919", debug=True)

    assert chain.get_strikes() == [200.0]
    assert chain.debug["count_out"] == 1
