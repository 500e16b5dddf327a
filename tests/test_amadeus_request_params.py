from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest
import requests

from api_amadeus import AmadeusClient, AmadeusConfig
from errors import AuthError, NoOffers, ServiceError


class _Resp:
    def __init__(self, payload, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        return self._payload


def _offer(total):
    return {"data": [{"type": "flight-offer", "price": {"currency": "USD", "total": total}}]}


def _client(token_resp=None, responder=None):
    """Client whose session records token posts and offer requests."""
    calls = {"token": 0, "requests": []}

    def fake_post(url, data=None, headers=None, timeout=None, verify=None):
        calls["token"] += 1
        calls["token_url"] = url
        calls["token_data"] = data
        return token_resp or _Resp({"access_token": f"tok{calls['token']}", "expires_in": 1799})

    def fake_request(method, url, params=None, headers=None, timeout=None, verify=None):
        calls["requests"].append({"method": method, "url": url, "params": params, "headers": headers})
        return (responder or (lambda params: _Resp(_offer("345.23"))))(params)

    session = SimpleNamespace(post=fake_post, request=fake_request, headers={})
    config = AmadeusConfig(client_id="id", client_secret="secret")
    return AmadeusClient(config, session=session), calls


def test_one_way_price_params_and_parse():
    c, calls = _client()

    assert c.get_cheapest_flight_price("jfk", "lhr", "2025-06-01", "USD") == 345.23

    req = calls["requests"][0]
    assert req["method"] == "GET"
    assert req["url"] == "https://test.api.amadeus.com/v2/shopping/flight-offers"
    assert req["params"] == {
        "originLocationCode": "JFK",
        "destinationLocationCode": "LHR",
        "departureDate": "2025-06-01",
        "adults": "1",
        "currencyCode": "USD",
        "max": "1",
    }
    assert req["headers"] == {"Authorization": "Bearer tok1"}
    assert calls["token_url"].endswith("/v1/security/oauth2/token")
    assert calls["token_data"]["grant_type"] == "client_credentials"


def test_fresh_token_per_price_request():
    c, calls = _client()
    c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")
    c.get_cheapest_flight_price("JFK", "LHR", "2025-06-02")

    assert calls["token"] == 2
    assert calls["requests"][1]["headers"] == {"Authorization": "Bearer tok2"}


def test_reuse_token_when_enabled():
    c, calls = _client()
    c.config.reuse_token = True
    c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")
    c.get_cheapest_flight_price("JFK", "LHR", "2025-06-02")

    assert calls["token"] == 1


def test_round_trip_adds_return_date():
    c, calls = _client()
    c.get_round_trip_price("JFK", "LHR", "2025-06-01", "2025-06-09", "EUR")

    params = calls["requests"][0]["params"]
    assert params["returnDate"] == "2025-06-09"
    assert params["currencyCode"] == "EUR"


def test_token_failure_raises_auth_error():
    c, calls = _client(token_resp=_Resp({"error": "invalid_client"}, status_code=401, text="invalid_client"))
    with pytest.raises(AuthError) as exc:
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")
    assert exc.value.status_code == 401
    assert calls["requests"] == []


def test_missing_credentials_raise_auth_error():
    c, calls = _client()
    c.config.client_secret = ""
    with pytest.raises(AuthError):
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")
    assert calls["token"] == 0


def test_token_network_error_is_auth_error():
    c, _ = _client()

    def boom(*args, **kwargs):
        raise requests.exceptions.ConnectionError("down")

    c._session.post = boom
    with pytest.raises(AuthError):
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")


def test_empty_result_raises_no_offers():
    c, _ = _client(responder=lambda params: _Resp({"data": []}))
    with pytest.raises(NoOffers):
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")


def test_error_status_raises_service_error_with_parsed_message():
    body = {"errors": [{"code": 477, "title": "INVALID FORMAT", "detail": "invalid date"}]}
    c, calls = _client(responder=lambda params: _Resp(body, status_code=400, text="..."))

    with pytest.raises(ServiceError, match="Code 477 - INVALID FORMAT - invalid date") as exc:
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")
    assert exc.value.status_code == 400
    # no automatic retries
    assert len(calls["requests"]) == 1


def test_cheapest_in_range_takes_minimum_and_skips_past_days():
    prices = {"2025-06-01": "410.00", "2025-06-02": "299.99", "2025-06-03": "350.00", "2025-06-04": "380.00"}
    c, calls = _client(responder=lambda params: _Resp(_offer(prices[params["departureDate"]])))

    best = c.get_cheapest_in_range("JFK", "LHR", "2025-06-02", 2, "USD", today=date(2025, 6, 1))

    assert best == 299.99
    # 2025-05-31 is in the past and never queried
    assert [r["params"]["departureDate"] for r in calls["requests"]] == [
        "2025-06-01", "2025-06-02", "2025-06-03", "2025-06-04",
    ]


def test_cheapest_in_range_ignores_days_without_offers():
    def responder(params):
        if params["departureDate"] == "2025-06-10":
            return _Resp(_offer("500.00"))
        return _Resp({"data": []})

    c, _ = _client(responder=responder)
    assert c.get_cheapest_in_range("JFK", "LHR", "2025-06-10", 1, today=date(2025, 6, 1)) == 500.0


def test_cheapest_in_range_without_any_offer():
    c, _ = _client(responder=lambda params: _Resp({"data": []}))
    with pytest.raises(NoOffers):
        c.get_cheapest_in_range("JFK", "LHR", "2025-06-10", 1, today=date(2025, 6, 1))


def test_cheapest_in_range_reraises_service_failure():
    c, _ = _client(responder=lambda params: _Resp({}, status_code=500, text="oops"))
    with pytest.raises(ServiceError):
        c.get_cheapest_in_range("JFK", "LHR", "2025-06-10", 1, today=date(2025, 6, 1))


class _HtmlResp(_Resp):
    def __init__(self, status_code=200):
        super().__init__(None, status_code, text="<html>gateway</html>")

    def json(self):
        raise requests.exceptions.JSONDecodeError("Expecting value", self.text, 0)


def test_unreadable_offer_body_is_service_error():
    c, _ = _client(responder=lambda params: _HtmlResp())
    with pytest.raises(ServiceError):
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")


def test_unreadable_token_body_is_auth_error():
    c, _ = _client(token_resp=_HtmlResp())
    with pytest.raises(AuthError):
        c.get_cheapest_flight_price("JFK", "LHR", "2025-06-01")


def test_cheapest_in_range_stops_at_first_auth_failure():
    c, calls = _client(token_resp=_Resp({}, status_code=401, text="invalid_client"))
    with pytest.raises(AuthError):
        c.get_cheapest_in_range("JFK", "LHR", "2025-06-10", 7, today=date(2025, 6, 1))
    assert calls["token"] == 1
    assert calls["requests"] == []
