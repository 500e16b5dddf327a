"""Amadeus Self-Service flight price client.

Purpose
- Price a flight watch: one-way, round-trip, or cheapest within a ± day window.
- Raise `errors.TravelAPIError` subclasses so the watch cards can render an
  inline failure.

This client uses the Amadeus Flight Offers Search API (max=1 offer):
https://developers.amadeus.com/self-service/category/flights/api-doc/flight-offers-search

Environment variables (loaded via config.py):
- AMADEUS_CLIENT_ID
- AMADEUS_CLIENT_SECRET
- AMADEUS_API_ENV (test | production)

Notes
- Every price request obtains a fresh bearer token unless `reuse_token` is set.
- There are no automatic retries; a failed price needs a new render.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Optional

import requests

from config import LoadedConfig, load_config
from errors import AuthError, NoOffers, ServiceError, TravelAPIError

logger = logging.getLogger(__name__)

PROVIDER = "Amadeus"
TOKEN_ENDPOINT = "/v1/security/oauth2/token"
OFFERS_ENDPOINT = "/v2/shopping/flight-offers"


def _safe_resp_text(text: str, limit: int = 300) -> str:
    """Return a compact/truncated response text for log lines and raised errors."""

    text = (text or "").strip()
    if len(text) > limit:
        return text[:limit] + "…(truncated)"
    return text


@dataclass
class AmadeusConfig:
    client_id: str = ""
    client_secret: str = ""
    base_url: str = "https://test.api.amadeus.com"  # Default to test API
    timeout: float = 15.0
    verify_ssl: bool = True
    # reuse a token until 60s before it expires instead of one per request
    reuse_token: bool = False

    @staticmethod
    def from_config(cfg: Optional[LoadedConfig] = None) -> 'AmadeusConfig':
        cfg = cfg or load_config()
        return AmadeusConfig(
            client_id=cfg.amadeus_client_id,
            client_secret=cfg.amadeus_client_secret,
            base_url=cfg.amadeus_base_url,
        )


class AmadeusClient:
    """Flight price lookups.

    Public contract used by watches.py:
    - get_cheapest_flight_price(origin, destination, date, currency)
    - get_round_trip_price(origin, destination, depart_date, return_date, currency)
    - get_cheapest_in_range(origin, destination, depart_date, window_days, currency)

    Returns:
    - float price in `currency`

    Raises:
    - AuthError when no token can be obtained
    - NoOffers when the search is empty
    - ServiceError on any other failure
    """

    def __init__(self, config: Optional[AmadeusConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or AmadeusConfig.from_config()

        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/vnd.amadeus+json",
            "User-Agent": "TravelExplorer/1.0",
        })

        self._token_lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    # ------------------------------
    # Public API
    # ------------------------------

    def get_cheapest_flight_price(self, origin: str, destination: str, date: str, currency: str = "USD") -> float:
        params = self._offer_params(origin, destination, date, currency)
        return self._first_offer_price(params)

    def get_round_trip_price(
        self,
        origin: str,
        destination: str,
        depart_date: str,
        return_date: str,
        currency: str = "USD",
    ) -> float:
        params = self._offer_params(origin, destination, depart_date, currency)
        params["returnDate"] = return_date
        return self._first_offer_price(params)

    def get_cheapest_in_range(
        self,
        origin: str,
        destination: str,
        depart_date: str,
        window_days: int,
        currency: str = "USD",
        today: Optional[date] = None,
    ) -> float:
        """Cheapest one-way price over depart_date ± window_days, queried day by day."""
        today = today or date.today()
        center = date.fromisoformat(depart_date)

        best: Optional[float] = None
        last_error: Optional[TravelAPIError] = None
        for offset in range(-window_days, window_days + 1):
            day = center + timedelta(days=offset)
            if day < today:
                continue
            try:
                price = self.get_cheapest_flight_price(origin, destination, day.isoformat(), currency)
            except NoOffers:
                continue
            except AuthError:
                raise
            except TravelAPIError as e:
                logger.warning(f"{origin}→{destination} on {day}: {e}")
                last_error = e
                continue
            if best is None or price < best:
                best = price

        if best is not None:
            return best
        if last_error is not None:
            raise last_error
        raise NoOffers(f"No flight offers found within ±{window_days} days of {depart_date}", provider=PROVIDER)

    # ------------------------------
    # OAuth + HTTP
    # ------------------------------

    def _get_access_token(self) -> str:
        if not (self.config.client_id and self.config.client_secret):
            raise AuthError("Amadeus credentials missing (AMADEUS_CLIENT_ID/AMADEUS_CLIENT_SECRET)", provider=PROVIDER)

        with self._token_lock:
            if self.config.reuse_token and self._access_token and time.time() < (self._token_expires_at - 60):
                return self._access_token

            url = f"{self.config.base_url}{TOKEN_ENDPOINT}"
            data = {
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            }

            try:
                resp = self._session.post(
                    url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=self.config.timeout,
                    verify=self.config.verify_ssl,
                )
            except requests.exceptions.RequestException as e:
                logger.error(f"Amadeus token request failed: {e}")
                raise AuthError(f"Unable to retrieve Amadeus access token: {e}", provider=PROVIDER)

            if resp.status_code != 200:
                logger.error(f"Amadeus token error (HTTP {resp.status_code}): {_safe_resp_text(resp.text)}")
                raise AuthError(
                    "Unable to retrieve Amadeus access token",
                    status_code=resp.status_code,
                    provider=PROVIDER,
                )

            try:
                payload = resp.json()
            except ValueError:
                logger.error(f"Amadeus token response is not JSON: {_safe_resp_text(resp.text)}")
                raise AuthError("Amadeus token response is not readable", status_code=resp.status_code, provider=PROVIDER)
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise AuthError("Amadeus token response missing access_token", provider=PROVIDER)

            self._access_token = token
            self._token_expires_at = time.time() + int(payload.get("expires_in") or 0)
            return token

    def _request_json(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        token = self._get_access_token()
        url = f"{self.config.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {token}"}

        try:
            resp = self._session.request(
                "GET",
                url,
                params=params,
                headers=headers,
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Amadeus request failed: {e}")
            raise ServiceError(f"Amadeus request failed: {e}", provider=PROVIDER)

        if resp.status_code != 200:
            error_msg = self._parse_error_message(resp)
            logger.error(f"Amadeus flight error (HTTP {resp.status_code}): {error_msg}")
            raise ServiceError(
                f"Error fetching flight price (HTTP {resp.status_code}): {error_msg}",
                status_code=resp.status_code,
                provider=PROVIDER,
            )
        try:
            payload = resp.json()
        except ValueError:
            logger.error(f"Amadeus flight response is not JSON: {_safe_resp_text(resp.text)}")
            raise ServiceError("Amadeus returned an unreadable response", status_code=resp.status_code, provider=PROVIDER)
        if not isinstance(payload, dict):
            raise ServiceError("Amadeus returned an unexpected response", status_code=resp.status_code, provider=PROVIDER)
        return payload

    # ------------------------------
    # Helpers
    # ------------------------------

    def _offer_params(self, origin: str, destination: str, depart_date: str, currency: str) -> Dict[str, Any]:
        return {
            "originLocationCode": self._normalize_iata(origin),
            "destinationLocationCode": self._normalize_iata(destination),
            "departureDate": depart_date,
            "adults": "1",
            "currencyCode": currency,
            "max": "1",
        }

    def _first_offer_price(self, params: Dict[str, Any]) -> float:
        result = self._request_json(OFFERS_ENDPOINT, params)
        offers = result.get("data") or []
        if not offers:
            raise NoOffers("No flight offers found", provider=PROVIDER)

        # Response shape: { data: [ { price: { total: "345.23", ... }, ... } ] }
        try:
            return float(offers[0]["price"]["total"])
        except (KeyError, TypeError, ValueError):
            raise ServiceError("Flight offer has no readable total price", provider=PROVIDER)

    def _parse_error_message(self, resp: requests.Response) -> str:
        """Parse Amadeus error response to extract meaningful error message."""
        try:
            error_data = resp.json()
        except ValueError:
            return _safe_resp_text(resp.text)

        errors = error_data.get("errors") if isinstance(error_data, dict) else None
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first_error = errors[0]
            msg_parts = []
            if first_error.get("code"):
                msg_parts.append(f"Code {first_error['code']}")
            for part in (first_error.get("title"), first_error.get("detail")):
                if part:
                    msg_parts.append(part)
            if msg_parts:
                return " - ".join(msg_parts)
        return _safe_resp_text(resp.text)

    @staticmethod
    def _normalize_iata(code: str) -> str:
        return (code or "").strip().upper()
