import asyncio
from datetime import date
from types import SimpleNamespace
from unittest.mock import Mock

import requests

from api_amadeus import AmadeusClient, AmadeusConfig
from cards import (
    FAILED_TEXT,
    FETCHING_TEXT,
    CountryCard,
    WatchCard,
    WatchBoard,
    WatchCardState,
    price_text,
    rate_text,
)
from errors import NoOffers
from models import Country, FlightWatch
from storage import MemoryStore
from watches import PriceMode, WatchRegistry
from wishlist import WishlistManager

JAPAN = Country(name="Japan", population=125836021, region="Asia", capital="Tokyo", currencies=["JPY"])


def _registry_with(watch):
    registry = WatchRegistry(MemoryStore())
    registry.add(watch, today=date(2025, 6, 1))
    return registry


def test_country_fields():
    card = CountryCard(JAPAN, WishlistManager(MemoryStore()), rate=151.237)
    assert card.fields == [
        ("Name", "Japan"),
        ("Capital", "Tokyo"),
        ("Population", "125,836,021"),
        ("Region", "Asia"),
        ("Currency", "1 USD = 151.24 JPY"),
    ]


def test_country_fields_fall_back_to_na():
    country = Country(name="Antarctica", population=1000, region="Antarctic")
    fields = dict(CountryCard(country, WishlistManager(MemoryStore())).fields)
    assert fields["Capital"] == "N/A"
    assert fields["Currency"] == "N/A"
    assert rate_text(None, "EUR") == "N/A"


def test_toggle_requeries_membership():
    store = MemoryStore()
    card = CountryCard(JAPAN, WishlistManager(store))
    assert card.button_label == "Add to Wishlist"

    assert card.toggle() is True
    assert card.button_label == "Remove from Wishlist"

    # another page removed it meanwhile; the card must follow the store
    WishlistManager(store).remove("Japan")
    assert card.button_label == "Add to Wishlist"
    assert card.toggle() is True
    assert card.toggle() is False


def test_price_text_modes():
    watch = FlightWatch("JFK", "LHR", "2025-06-01", None, 3, "USD")
    assert price_text(PriceMode.ONE_WAY, 345.2, watch) == "One-way: 345.20 USD"
    assert price_text(PriceMode.ROUND_TRIP, 700, watch) == "Round-trip: 700.00 USD"
    assert price_text(PriceMode.FLEXIBLE, 299.999, watch) == "Cheapest ±3d: 300.00 USD"


def test_detail_lines_are_conditional():
    one_way = WatchCard(FlightWatch("JFK", "LHR", "2025-06-01"), Mock(), Mock())
    assert one_way.detail_lines() == ["Depart: 2025-06-01", "Currency: USD"]

    full = WatchCard(FlightWatch("JFK", "LHR", "2025-06-01", "2025-06-08", 2), Mock(), Mock())
    assert full.detail_lines() == [
        "Depart: 2025-06-01", "Return: 2025-06-08", "Window: ±2 days", "Currency: USD",
    ]


def test_watch_card_displays_price_and_appends_history():
    watch = FlightWatch("JFK", "LHR", "2025-06-01")
    registry = _registry_with(watch)
    registry.history.append(watch.identity, 400.0)
    client = Mock()
    client.get_cheapest_flight_price.return_value = 345.23

    card = WatchCard(watch, registry, client)
    assert card.state is WatchCardState.CREATED
    assert card.price_text == FETCHING_TEXT

    assert asyncio.run(card.refresh()) is WatchCardState.PRICE_DISPLAYED
    assert card.price_text == "One-way: 345.23 USD"
    assert card.history == [400.0, 345.23]
    assert card.stats_text == "Low: 345.23, High: 400.00"


def test_round_trip_card_uses_round_trip_path():
    watch = FlightWatch("JFK", "LHR", "2025-06-01", "2025-06-09")
    client = Mock()
    client.get_round_trip_price.return_value = 810.0

    card = WatchCard(watch, _registry_with(watch), client)
    asyncio.run(card.refresh())

    assert card.mode is PriceMode.ROUND_TRIP
    assert card.price_text == "Round-trip: 810.00 USD"
    client.get_cheapest_flight_price.assert_not_called()
    client.get_cheapest_in_range.assert_not_called()


def test_failed_fetch_is_terminal_for_the_render_pass():
    watch = FlightWatch("JFK", "LHR", "2025-06-01")
    registry = _registry_with(watch)
    client = Mock()
    client.get_cheapest_flight_price.side_effect = NoOffers("No flight offers found")

    card = WatchCard(watch, registry, client)
    assert asyncio.run(card.refresh()) is WatchCardState.PRICE_FETCH_FAILED
    assert card.price_text == FAILED_TEXT
    assert registry.history.get(watch.identity) == []

    # no automatic retry
    asyncio.run(card.refresh())
    assert client.get_cheapest_flight_price.call_count == 1


def test_remove_deletes_watch_and_history():
    watch = FlightWatch("JFK", "LHR", "2025-06-01")
    registry = _registry_with(watch)
    client = Mock()
    client.get_cheapest_flight_price.return_value = 300.0

    card = WatchCard(watch, registry, client)
    asyncio.run(card.refresh())
    card.remove()

    assert card.state is WatchCardState.REMOVED
    assert registry.list() == []
    assert registry.history.get(watch.identity) == []


def test_unreadable_fare_response_fails_only_that_card():
    class _Html:
        status_code = 200
        text = "<html>maintenance</html>"

        def json(self):
            raise requests.exceptions.JSONDecodeError("Expecting value", self.text, 0)

    class _Token:
        status_code = 200
        text = ""

        def json(self):
            return {"access_token": "tok", "expires_in": 1799}

    session = SimpleNamespace(
        post=lambda *a, **kw: _Token(),
        request=lambda *a, **kw: _Html(),
        headers={},
    )
    client = AmadeusClient(AmadeusConfig(client_id="id", client_secret="secret"), session=session)
    watch = FlightWatch("JFK", "LHR", "2025-06-01")
    registry = _registry_with(watch)

    card = WatchCard(watch, registry, client)
    assert asyncio.run(card.refresh()) is WatchCardState.PRICE_FETCH_FAILED
    assert card.price_text == FAILED_TEXT
    assert registry.history.get(watch.identity) == []


def test_watch_board_runs_one_render_pass_at_a_time():
    passes = []

    async def _scenario():
        release = asyncio.Event()

        async def _render(registry, client, container):
            passes.append(container)
            await release.wait()
            return []

        board = WatchBoard(Mock(), Mock(), "container", render=_render)
        first = asyncio.create_task(board.refresh())
        await asyncio.sleep(0)

        assert board.is_loading
        assert await board.refresh() is False

        release.set()
        assert await first is True
        assert board.is_loading is False
        assert await board.refresh() is True

    asyncio.run(_scenario())
    assert passes == ["container", "container"]
