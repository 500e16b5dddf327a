"""Wishlist of countries, persisted under `travelWishlist`."""

from typing import List

from models import Country
from storage import WISHLIST_KEY, KeyValueStore, load_json, save_json


class WishlistManager:
    """Deduplicated (by common name), insertion-ordered list of countries."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def list(self) -> List[Country]:
        return [Country.from_dict(item) for item in load_json(self.store, WISHLIST_KEY, [])]

    def contains(self, country_name: str) -> bool:
        return any(c.name == country_name for c in self.list())

    def add(self, country: Country) -> None:
        """Append `country` unless a record with the same name exists."""
        countries = self.list()
        if any(c.name == country.name for c in countries):
            return
        countries.append(country)
        self._save(countries)

    def remove(self, country_name: str) -> None:
        self._save([c for c in self.list() if c.name != country_name])

    def clear(self) -> None:
        self.store.delete(WISHLIST_KEY)

    def _save(self, countries: List[Country]) -> None:
        save_json(self.store, WISHLIST_KEY, [c.to_dict() for c in countries])
