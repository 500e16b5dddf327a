"""
Country and flight-watch cards.

`CountryCard` and `WatchCard` hold the display state and the store
mutations; the `render_*` functions turn them into NiceGUI elements.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from nicegui import ui

from errors import TravelAPIError
from models import Country, FlightWatch
from sparkline import draw_sparkline
from watches import PriceMode, WatchRegistry, history_stats, quote_watch
from wishlist import WishlistManager

logger = logging.getLogger(__name__)

FETCHING_TEXT = 'Fetching price…'
FAILED_TEXT = 'Error fetching price'


def rate_text(rate: Optional[float], currency_code: Optional[str]) -> str:
    if not rate or not currency_code:
        return 'N/A'
    return f'1 USD = {rate:.2f} {currency_code}'


def price_text(mode: PriceMode, price: float, watch: FlightWatch) -> str:
    amount = f'{price:.2f} {watch.currency}'
    if mode is PriceMode.ROUND_TRIP:
        return f'Round-trip: {amount}'
    if mode is PriceMode.FLEXIBLE:
        return f'Cheapest ±{watch.window_days}d: {amount}'
    return f'One-way: {amount}'


class CountryCard:
    """Display fields plus the add/remove wishlist toggle for one country."""

    def __init__(
        self,
        country: Country,
        wishlist: WishlistManager,
        rate: Optional[float] = None,
        summary: str = '',
        map_url: Optional[str] = None,
    ):
        self.country = country
        self.wishlist = wishlist
        self.rate = rate
        self.summary = summary
        self.map_url = map_url

    @property
    def fields(self) -> List[Tuple[str, str]]:
        c = self.country
        return [
            ('Name', c.name),
            ('Capital', c.capital or 'N/A'),
            ('Population', f'{c.population:,}'),
            ('Region', c.region),
            ('Currency', rate_text(self.rate, c.primary_currency)),
        ]

    @property
    def in_wishlist(self) -> bool:
        # always ask the store; another tab may have changed it
        return self.wishlist.contains(self.country.name)

    @property
    def button_label(self) -> str:
        return 'Remove from Wishlist' if self.in_wishlist else 'Add to Wishlist'

    def toggle(self) -> bool:
        """Flip wishlist membership; returns the membership after the change."""
        if self.in_wishlist:
            self.wishlist.remove(self.country.name)
        else:
            self.wishlist.add(self.country)
        return self.in_wishlist

    def remove(self) -> None:
        self.wishlist.remove(self.country.name)


class WatchCardState(Enum):
    CREATED = 'created'
    PRICE_FETCHING = 'price_fetching'
    PRICE_DISPLAYED = 'price_displayed'
    PRICE_FETCH_FAILED = 'price_fetch_failed'
    REMOVED = 'removed'


class WatchCard:
    """One render pass of a flight watch: price fetch, history update, removal."""

    def __init__(self, watch: FlightWatch, registry: WatchRegistry, client):
        self.watch = watch
        self.registry = registry
        self.client = client
        self.state = WatchCardState.CREATED
        self.mode: Optional[PriceMode] = None
        self.price: Optional[float] = None
        self.history: List[float] = []
        self.price_text = FETCHING_TEXT

    def detail_lines(self) -> List[str]:
        w = self.watch
        lines = [f'Depart: {w.depart_date}']
        if w.return_date:
            lines.append(f'Return: {w.return_date}')
        if w.window_days > 0:
            lines.append(f'Window: ±{w.window_days} days')
        lines.append(f'Currency: {w.currency}')
        return lines

    @property
    def stats_text(self) -> str:
        if not self.history:
            return ''
        low, high = history_stats(self.history)
        return f'Low: {low:.2f}, High: {high:.2f}'

    async def refresh(self) -> WatchCardState:
        """Fetch the price once; failures stay on the card until the next render."""
        if self.state is not WatchCardState.CREATED:
            return self.state

        self.state = WatchCardState.PRICE_FETCHING
        try:
            mode, price = await asyncio.to_thread(quote_watch, self.client, self.watch)
        except TravelAPIError as e:
            logger.warning(f'Price fetch for {self.watch.route} failed: {e}')
            if self.state is not WatchCardState.REMOVED:
                self.state = WatchCardState.PRICE_FETCH_FAILED
                self.price_text = FAILED_TEXT
            return self.state

        if self.state is WatchCardState.REMOVED:
            return self.state

        self.mode, self.price = mode, price
        self.history = self.registry.history.append(self.watch.identity, price)
        self.price_text = price_text(mode, price, self.watch)
        self.state = WatchCardState.PRICE_DISPLAYED
        return self.state

    def remove(self) -> None:
        self.registry.remove(self.watch)
        self.state = WatchCardState.REMOVED


def render_country_card(card: CountryCard, *, compact: bool = False, on_removed: Optional[Callable] = None):
    """Build a country card in the current container.

    `compact` cards (wishlist page) only offer a small remove button.
    """
    with ui.card().classes('countryCard') as root:
        if card.country.flag:
            ui.image(card.country.flag).classes('flag').props(f'alt="Flag of {card.country.name}"')

        with ui.column().classes('countryInfo').style('gap:4px'):
            for label, value in card.fields:
                ui.label(f'{label}: {value}')

        if card.summary:
            ui.label(card.summary).classes('muted summary')
        if card.map_url:
            ui.image(card.map_url).classes('mapImg')

        if compact:
            def _remove():
                card.remove()
                root.delete()
                if on_removed:
                    on_removed(card.country)

            ui.button('×', on_click=_remove).props('flat round dense').classes('removeBtn').tooltip('Remove from Wishlist')
        else:
            def _toggle():
                card.toggle()
                btn.set_text(card.button_label)
                btn.classes(replace='btn secondary' if card.in_wishlist else 'btn primary')

            btn = ui.button(card.button_label, on_click=_toggle)
            btn.classes('btn secondary' if card.in_wishlist else 'btn primary')
    return root


async def render_watch_card(card: WatchCard, container):
    """Append a watch card to `container`, then fetch its price and chart."""
    with container:
        with ui.card().classes('watchCard') as root:
            def _remove():
                card.remove()
                root.delete()

            with ui.row().style('justify-content:space-between; align-items:center; width:100%'):
                ui.label(card.watch.route).classes('routeHeading')
                ui.button('×', on_click=_remove).props('flat round dense').classes('removeWatchBtn').tooltip('Remove this watch')

            with ui.column().classes('watchInfo').style('gap:2px'):
                for line in card.detail_lines():
                    ui.label(line)

            price_label = ui.label(card.price_text).classes('watchPrice')
            chart_slot = ui.column().style('width:100%')

    await card.refresh()
    if card.state is WatchCardState.REMOVED:
        return root

    price_label.set_text(card.price_text)
    if card.state is WatchCardState.PRICE_DISPLAYED:
        with chart_slot:
            draw_sparkline(card.history, card.watch.currency).style('height:80px; width:100%')
            ui.label(card.stats_text).classes('watchStats muted')
    return root


async def render_all_watches(registry: WatchRegistry, client, container) -> List[WatchCard]:
    """Rebuild every watch card, one price fetch at a time, in insertion order."""
    container.clear()
    cards = []
    for watch in registry.list():
        card = WatchCard(watch, registry, client)
        await render_watch_card(card, container)
        cards.append(card)
    return cards


class WatchBoard:
    """The watches page's card container; at most one render pass at a time."""

    def __init__(self, registry: WatchRegistry, client, container, render=render_all_watches):
        self.registry = registry
        self.client = client
        self.container = container
        self._render = render
        self.is_loading = False
        self.cards: List[WatchCard] = []

    async def refresh(self) -> bool:
        """Run a render pass; False when one is already running."""
        if self.is_loading:
            return False
        self.is_loading = True
        try:
            self.cards = await self._render(self.registry, self.client, self.container)
        finally:
            self.is_loading = False
        return True
