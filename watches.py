"""
Flight watches: the registry persisted under `flightWatches`, the bounded
per-watch price histories, and the dispatch between the three pricing modes.
"""

import logging
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from errors import WatchValidationError
from models import FlightWatch, history_key_for
from storage import WATCHES_KEY, KeyValueStore, load_json, save_json

logger = logging.getLogger(__name__)

MAX_HISTORY = 10

Identity = Tuple[str, str, str, Optional[str], int]


def _is_iata(code: str) -> bool:
    return len(code) == 3 and code.isalpha()


def make_watch(
    origin: str,
    destination: str,
    depart_date: str,
    return_date: Optional[str] = None,
    window_days=0,
    currency: str = "USD",
) -> FlightWatch:
    """Build a watch from raw form values (codes upper-cased, blanks dropped)."""
    try:
        window = float(window_days or 0)
    except (TypeError, ValueError):
        raise WatchValidationError("Window must be a whole number of days.")
    if not window.is_integer():
        raise WatchValidationError("Window must be a whole number of days.")
    return FlightWatch(
        origin=(origin or "").strip().upper(),
        destination=(destination or "").strip().upper(),
        depart_date=(depart_date or "").strip(),
        return_date=(return_date or "").strip() or None,
        window_days=int(window),
        currency=(currency or "USD").strip().upper(),
    )


def validate_watch(watch: FlightWatch, today: Optional[date] = None) -> None:
    """Raise WatchValidationError when the watch cannot be tracked."""
    today = today or date.today()

    if not watch.origin or not watch.destination or not watch.depart_date:
        raise WatchValidationError("Please enter origin, destination, and a valid date.")
    if not (_is_iata(watch.origin) and _is_iata(watch.destination)):
        raise WatchValidationError("Origin and destination must be 3-letter airport codes.")
    if watch.origin == watch.destination:
        raise WatchValidationError("Origin and destination must be different.")

    try:
        depart = date.fromisoformat(watch.depart_date)
        ret = date.fromisoformat(watch.return_date) if watch.return_date else None
    except ValueError:
        raise WatchValidationError("Dates must use the YYYY-MM-DD format.")

    if depart < today:
        raise WatchValidationError("Departure date must be today or later.")
    if ret is not None and ret < depart:
        raise WatchValidationError("Return date must be on or after the departure date.")
    if watch.window_days < 0:
        raise WatchValidationError("Window days cannot be negative.")


class PriceHistoryTracker:
    """Most recent prices per watch, capped at MAX_HISTORY (oldest dropped)."""

    def __init__(self, store: KeyValueStore, max_entries: int = MAX_HISTORY):
        self.store = store
        self.max_entries = max_entries

    def get(self, identity: Identity) -> List[float]:
        return load_json(self.store, history_key_for(identity), [])

    def append(self, identity: Identity, price: float) -> List[float]:
        key = history_key_for(identity)
        history = load_json(self.store, key, [])
        history.append(price)
        history = history[-self.max_entries:]
        save_json(self.store, key, history)
        return history

    def delete(self, identity: Identity) -> None:
        self.store.delete(history_key_for(identity))


class WatchRegistry:
    """Deduplicated (by identity tuple), insertion-ordered list of watches."""

    def __init__(self, store: KeyValueStore, history: Optional[PriceHistoryTracker] = None):
        self.store = store
        self.history = history or PriceHistoryTracker(store)

    def list(self) -> List[FlightWatch]:
        return [FlightWatch.from_dict(item) for item in load_json(self.store, WATCHES_KEY, [])]

    def add(self, watch: FlightWatch, today: Optional[date] = None) -> bool:
        """Persist `watch`; False when an identical watch already exists.

        Raises WatchValidationError for a watch `validate_watch` rejects, so
        every stored watch has a distinct history key.
        """
        validate_watch(watch, today)
        watches = self.list()
        if any(w.identity == watch.identity for w in watches):
            logger.info(f"Watch {watch!r} already exists")
            return False
        watches.append(watch)
        self._save(watches)
        return True

    def remove(self, watch: Union[FlightWatch, Identity]) -> None:
        """Drop the matching watch and its price history."""
        identity = watch.identity if isinstance(watch, FlightWatch) else tuple(watch)
        self._save([w for w in self.list() if w.identity != identity])
        self.history.delete(identity)

    def _save(self, watches: List[FlightWatch]) -> None:
        save_json(self.store, WATCHES_KEY, [w.to_dict() for w in watches])


class PriceMode(Enum):
    ONE_WAY = "one-way"
    ROUND_TRIP = "round-trip"
    FLEXIBLE = "flexible"


def price_mode(watch: FlightWatch) -> PriceMode:
    if watch.return_date:
        return PriceMode.ROUND_TRIP
    if watch.window_days > 0:
        return PriceMode.FLEXIBLE
    return PriceMode.ONE_WAY


def quote_watch(client, watch: FlightWatch) -> Tuple[PriceMode, float]:
    """Price `watch` with the client call matching its mode."""
    mode = price_mode(watch)
    if mode is PriceMode.ROUND_TRIP:
        price = client.get_round_trip_price(
            watch.origin, watch.destination, watch.depart_date, watch.return_date, watch.currency
        )
    elif mode is PriceMode.FLEXIBLE:
        price = client.get_cheapest_in_range(
            watch.origin, watch.destination, watch.depart_date, watch.window_days, watch.currency
        )
    else:
        price = client.get_cheapest_flight_price(
            watch.origin, watch.destination, watch.depart_date, watch.currency
        )
    return mode, price


def history_stats(history: Sequence[float]) -> Tuple[float, float]:
    return min(history), max(history)
