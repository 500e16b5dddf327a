"""
Travel Explorer - Main Application
Look up countries, keep a travel wishlist, and watch flight prices.
"""
import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from nicegui import Client, ui, app as nicegui_app

from airports import get_airport_db
from api_amadeus import AmadeusClient, AmadeusConfig
from api_client import (
    APIConfig,
    CountriesClient,
    ExchangeRateClient,
    WikiClient,
    build_static_map_url,
)
from cards import CountryCard, WatchBoard, render_country_card
from config import APP_NAME, config_help_text, load_config
from errors import TravelAPIError, WatchValidationError
from models import Country
from storage import KeyValueStore, SQLiteStore, UserStorageStore
from watches import WatchRegistry, make_watch
from wishlist import WishlistManager

logger = logging.getLogger(__name__)

cfg = load_config()
api_config = APIConfig(rates_api_key=cfg.exchange_rate_api_key)

countries_client = CountriesClient(api_config)
rates_client = ExchangeRateClient(api_config)
wiki_client = WikiClient(api_config)
flight_client: Optional[AmadeusClient] = None
sqlite_store: Optional[SQLiteStore] = None


def _static_dir() -> Path:
    return Path(__file__).resolve().parent / 'static'


def _add_theme_assets() -> None:
    """Serve and include the custom theme."""
    static_dir = _static_dir()
    if static_dir.exists():
        nicegui_app.add_static_files('/static', str(static_dir))
        ui.add_head_html('<link rel="stylesheet" href="/static/theme.css">')
    ui.add_head_html('<meta name="viewport" content="width=device-width, initial-scale=1">')


def get_store() -> KeyValueStore:
    """Browser-scoped storage by default; one shared SQLite file when configured."""
    global sqlite_store
    if cfg.store_backend == 'sqlite':
        if sqlite_store is None:
            sqlite_store = SQLiteStore(cfg.store_path)
        return sqlite_store
    return UserStorageStore(nicegui_app.storage.user)


def get_flight_client() -> AmadeusClient:
    global flight_client
    if flight_client is None:
        flight_client = AmadeusClient(AmadeusConfig.from_config(cfg))
    return flight_client


async def fetch_rate(country: Country) -> Optional[float]:
    """USD rate for the country's first currency; None when unavailable."""
    code = country.primary_currency
    if not code:
        return None
    try:
        return await asyncio.to_thread(rates_client.get_exchange_rate, code)
    except TravelAPIError as e:
        logger.warning(f"No rate for {country.name} ({code}): {e}")
        return None


def _create_topbar():
    with ui.row().classes('topbar'):
        ui.label(APP_NAME).classes('name')
        with ui.row().style('gap:16px'):
            ui.link('Explore', '/')
            ui.link('Wishlist', '/wishlist')
            ui.link('Flight watches', '/watches')


def _create_footer():
    with ui.element('div').classes('footer').style('margin-top:48px'):
        ui.label(f'© {date.today().year} {APP_NAME} · Prices and rates are indicative only.').classes('muted')


class CountrySearchPage:
    """Search by name or draw a random country."""

    def __init__(self, store: KeyValueStore):
        self.wishlist = WishlistManager(store)
        self.is_loading = False

        # UI refs
        self.country_input = None
        self.results_container = None

    def create_ui(self):
        _add_theme_assets()

        with ui.column().classes('wrap'):
            _create_topbar()

            with ui.element('div').classes('panel'):
                ui.label('Find a country').classes('sectionTitle')
                with ui.row().style('gap:16px; align-items:center; flex-wrap:wrap'):
                    self.country_input = ui.input(
                        label='Country name',
                        placeholder='e.g. Portugal',
                    ).props('dense outlined').on('keydown.enter', self._on_search_click)
                    ui.button('Search', icon='search', on_click=self._on_search_click).classes('btn primary')
                    ui.button('Surprise me', icon='casino', on_click=self._on_random_click).classes('btn ghost')

            self.results_container = ui.column().classes('results')
            _create_footer()

    async def _on_search_click(self):
        name = (self.country_input.value or '').strip()
        if name:
            await self._display(lambda: countries_client.lookup_country_by_name(name))

    async def _on_random_click(self):
        await self._display(countries_client.pick_random_country)

    async def _display(self, fetch: Callable[[], Country]):
        if self.is_loading:
            return
        self.is_loading = True
        try:
            country = await asyncio.to_thread(fetch)
            rate = await fetch_rate(country)
            summary = await asyncio.to_thread(wiki_client.get_wiki_summary, country.name)
        except TravelAPIError as e:
            ui.notify(str(e), type='negative')
            return
        finally:
            self.is_loading = False

        map_url = build_static_map_url(*country.latlng, config=api_config) if country.latlng else None
        card = CountryCard(country, self.wishlist, rate=rate, summary=summary, map_url=map_url)

        self.results_container.clear()
        with self.results_container:
            render_country_card(card)


class WishlistPage:
    """Saved countries with their current exchange rate."""

    def __init__(self, store: KeyValueStore):
        self.wishlist = WishlistManager(store)
        self.container = None

    def create_ui(self):
        _add_theme_assets()

        with ui.column().classes('wrap'):
            _create_topbar()
            with ui.row().style('justify-content:space-between; align-items:center; width:100%'):
                ui.label('My wishlist').classes('sectionTitle')
                ui.button('Clear wishlist', icon='delete_sweep', on_click=self._on_clear_click).classes('btn small')
            self.container = ui.row().classes('cardGrid')
            _create_footer()

    async def render_cards(self):
        self.container.clear()
        countries = self.wishlist.list()
        if not countries:
            with self.container:
                ui.label('Your wishlist is empty. Add countries from the Explore page.').classes('muted')
            return

        for country in countries:
            rate = await fetch_rate(country)
            with self.container:
                render_country_card(CountryCard(country, self.wishlist, rate=rate), compact=True)

    def _on_clear_click(self):
        self.wishlist.clear()
        self.container.clear()
        ui.notify('Wishlist cleared', type='info')


class WatchesPage:
    """Add-watch form plus one card per flight watch."""

    def __init__(self, store: KeyValueStore):
        self.registry = WatchRegistry(store)
        self.airport_db = get_airport_db()

        # UI refs
        self.origin_input = None
        self.destination_input = None
        self.depart_input = None
        self.return_input = None
        self.window_input = None
        self.board: Optional[WatchBoard] = None

    def create_ui(self):
        _add_theme_assets()

        with ui.column().classes('wrap'):
            _create_topbar()

            with ui.element('div').classes('panel'):
                ui.label('Add a flight watch').classes('sectionTitle')
                with ui.row().style('gap:16px; flex-wrap:wrap'):
                    self.origin_input = self._airport_input('Origin (IATA)')
                    self.destination_input = self._airport_input('Destination (IATA)')
                with ui.row().style('gap:16px; flex-wrap:wrap; margin-top:16px'):
                    self.depart_input = ui.input(label='Departure date').props('type=date dense outlined')
                    self.return_input = ui.input(label='Return date (optional)').props('type=date dense outlined')
                    self.window_input = ui.number(label='± days (optional)', value=0, min=0, max=7).props('dense outlined')
                ui.button('Add watch', icon='add_alert', on_click=self._on_add_click).classes('btn primary').style('margin-top:16px')

            ui.label('Watched routes').classes('sectionTitle')
            self.board = WatchBoard(self.registry, get_flight_client(), ui.row().classes('cardGrid'))
            _create_footer()

    def _airport_input(self, label: str):
        """Text input with up to 8 clickable airport suggestions below it."""
        def _pick(code: str):
            field.set_value(code)
            suggestions.clear()

        def _suggest(e):
            suggestions.clear()
            if self.airport_db.get_airport(e.value or ''):
                return
            with suggestions:
                for airport in self.airport_db.search(e.value or ''):
                    ui.button(airport.display_name, on_click=lambda c=airport.iata: _pick(c)).props('flat dense no-caps')

        with ui.column().style('gap:4px; min-width:256px'):
            field = ui.input(label=label, on_change=_suggest).props('dense outlined')
            suggestions = ui.column().classes('suggestions').style('gap:0')
        return field

    async def render_cards(self):
        await self.board.refresh()

    async def _on_add_click(self):
        if self.board.is_loading:
            ui.notify('Prices are still loading; add the watch once they finish.', type='warning')
            return

        try:
            watch = make_watch(
                self.origin_input.value,
                self.destination_input.value,
                self.depart_input.value,
                self.return_input.value,
                self.window_input.value,
            )
            added = self.registry.add(watch)
        except WatchValidationError as e:
            ui.notify(str(e), type='warning')
            return

        if not added:
            ui.notify('You are already watching this route on that date.', type='warning')
            return

        for field in (self.origin_input, self.destination_input, self.depart_input, self.return_input):
            field.set_value('')
        self.window_input.set_value(0)
        await self.render_cards()


@ui.page('/')
def index():
    """Search / random lookup page."""
    CountrySearchPage(get_store()).create_ui()


@ui.page('/wishlist')
async def wishlist_page(client: Client):
    page = WishlistPage(get_store())
    page.create_ui()
    await client.connected()
    await page.render_cards()


@ui.page('/watches')
async def watches_page(client: Client):
    page = WatchesPage(get_store())
    page.create_ui()
    if not cfg.has_amadeus:
        ui.notify('Amadeus credentials are not configured; prices cannot be fetched.', type='warning')
    await client.connected()
    await page.render_cards()


def main():
    logging.basicConfig(level=logging.INFO)
    if not (cfg.has_amadeus and cfg.has_exchange_rates):
        print(config_help_text())

    ui.run(
        title=APP_NAME,
        favicon='✈️',
        dark=True,
        reload=False,
        port=cfg.port,
        storage_secret=cfg.storage_secret,
    )


if __name__ in {'__main__', '__mp_main__'}:
    main()
