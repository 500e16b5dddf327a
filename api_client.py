'''
Country, exchange-rate, encyclopedic-summary and static-map clients.

Each client wraps a single upstream behind one operation and maps a
non-success response to an `errors.TravelAPIError` subclass.
'''
import logging
import random
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, urlencode

import requests

from errors import InvalidRate, NotFound, ServiceError
from models import Country

logger = logging.getLogger(__name__)

COUNTRY_FIELDS = "name,flags,capital,population,region,currencies,latlng"

_FIRST_SENTENCE = re.compile(r'^(.+?[.!?])(?:\s|$)', re.DOTALL)


@dataclass
class APIConfig:
    '''Endpoints shared by the travel data clients.'''
    countries_url: str = "https://restcountries.com/v3.1"
    rates_url: str = "https://v6.exchangerate-api.com/v6"
    rates_api_key: str = ""
    wiki_url: str = "https://en.wikipedia.org/api/rest_v1/page/summary"
    static_map_url: str = "https://staticmap.openstreetmap.de/staticmap.php"
    map_zoom: int = 4
    map_size: str = "600x300"
    timeout: int = 10


class _BaseClient:
    provider = ""

    def __init__(self, config: Optional[APIConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or APIConfig()
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': 'TravelExplorer/1.0'})

    def _get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        try:
            return self.session.get(url, params=params, timeout=self.config.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.provider} request failed: {e}")
            raise ServiceError(f"{self.provider} request failed: {e}", provider=self.provider)

    def _json(self, response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.provider} returned an unreadable body: {e}")
            raise ServiceError(
                f"{self.provider} returned an unreadable response",
                status_code=response.status_code,
                provider=self.provider,
            )


class CountriesClient(_BaseClient):
    '''REST Countries lookups.'''

    provider = "REST Countries"

    def lookup_country_by_name(self, name: str) -> Country:
        '''
        Fetch one country by exact full name.

        Raises:
            NotFound: upstream reported a non-success status
        '''
        url = f"{self.config.countries_url}/name/{quote(name.strip())}"
        response = self._get(url, params={'fullText': 'true'})
        if response.status_code != 200:
            raise NotFound("Country not found", status_code=response.status_code, provider=self.provider)

        data = self._json(response)
        if not data or not isinstance(data, list):
            raise NotFound("Country not found", status_code=response.status_code, provider=self.provider)
        return Country.from_api(data[0])

    def list_all_countries(self) -> List[Country]:
        response = self._get(f"{self.config.countries_url}/all", params={'fields': COUNTRY_FIELDS})
        if response.status_code != 200:
            raise ServiceError(
                "Error fetching country list",
                status_code=response.status_code,
                provider=self.provider,
            )
        return [Country.from_api(item) for item in self._json(response)]

    def pick_random_country(self, rng=random) -> Country:
        '''Draw uniformly from the full country listing.'''
        countries = self.list_all_countries()
        if not countries:
            raise ServiceError("Country list is empty", provider=self.provider)
        return countries[rng.randrange(len(countries))]


class ExchangeRateClient(_BaseClient):
    '''ExchangeRate-API latest rates.'''

    provider = "ExchangeRate-API"

    def get_exchange_rate(self, currency_code: str, base: str = "USD") -> float:
        '''
        Return how many `currency_code` units one `base` unit buys.

        Raises:
            ServiceError: non-success status
            InvalidRate: the rate table lacks `currency_code`
        '''
        url = f"{self.config.rates_url}/{self.config.rates_api_key}/latest/{base}"
        response = self._get(url)
        if response.status_code != 200:
            raise ServiceError(
                "Error fetching exchange rates",
                status_code=response.status_code,
                provider=self.provider,
            )

        payload = self._json(response)
        rates = payload.get("conversion_rates") if isinstance(payload, dict) else None
        rates = rates or {}
        rate = rates.get(currency_code)
        if not rate:
            raise InvalidRate(f"Invalid currency code or missing rate: {currency_code}", provider=self.provider)
        return float(rate)


class WikiClient(_BaseClient):
    '''Wikipedia page summaries.'''

    provider = "Wikipedia"

    def get_wiki_summary(self, country_name: str) -> str:
        '''
        Return the first sentence of the page extract.

        The summary is decorative: every failure yields "".
        '''
        url = f"{self.config.wiki_url}/{quote(country_name.strip().replace(' ', '_'))}"
        try:
            response = self._get(url)
            if response.status_code != 200:
                logger.warning(f"Summary lookup for {country_name} returned HTTP {response.status_code}")
                return ""
            payload = self._json(response)
        except ServiceError as e:
            logger.warning(f"Summary lookup for {country_name} failed: {e}")
            return ""

        extract = (payload.get("extract") or "").strip() if isinstance(payload, dict) else ""
        return first_sentence(extract)


def first_sentence(text: str) -> str:
    match = _FIRST_SENTENCE.match(text or "")
    return match.group(1).strip() if match else (text or "").strip()


def build_static_map_url(lat: float, lng: float, config: Optional[APIConfig] = None) -> str:
    '''Static map image URL centered on (lat, lng) with a marker.'''
    config = config or APIConfig()
    params = {
        'center': f"{lat},{lng}",
        'zoom': config.map_zoom,
        'size': config.map_size,
        'markers': f"{lat},{lng},red-pushpin",
    }
    return f"{config.static_map_url}?{urlencode(params)}"
