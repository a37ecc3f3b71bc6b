"""Quote fetch pipeline.

Symbols are spot metals (GoldAPI) or equities (AlphaVantage overview + global
quote). Every upstream result is written back to the cache with a TTL that
depends on the outcome:

    overview   24 h on success, 1 h when empty
    price      60 min on success, 5 min when empty

Empty results are cached on purpose: a bad symbol or a rate-limited provider
must not trigger an upstream call on every request. No cache lock is held
while a provider call is in flight, so two concurrent misses for one key both
go upstream and the last write wins.
"""

import logging
from collections.abc import Callable

from errors import MissingSymbolError
from schemas import Overview, Price, Quote
from services.cache import Cache, register_payload_type
from services.providers import AlphaVantageClient, GoldApiClient

logger = logging.getLogger(__name__)

OVERVIEW_SECTION = "overview"
PRICE_SECTION = "price"

# TTLs in minutes
OVERVIEW_TTL = 60 * 24
OVERVIEW_EMPTY_TTL = 60
PRICE_TTL = 60
PRICE_EMPTY_TTL = 5

METAL_NAMES = {
    "XAU": "Spot Gold",
    "XAG": "Spot Silver",
    "XPT": "Spot Platinum",
    "XPD": "Spot Palladium",
    "XRH": "Spot Rhodium",
}

register_payload_type(Overview)
register_payload_type(Price)


def is_metal(symbol: str) -> bool:
    return symbol.upper() in METAL_NAMES


def parse_symbols(raw: str | None) -> list[str]:
    """Split a ``sym`` query value into upper-cased symbols, dropping blanks."""
    symbols = [s.strip() for s in (raw or "").upper().split(",")]
    symbols = [s for s in symbols if s]
    if not symbols:
        raise MissingSymbolError()
    return symbols


class QuoteService:
    """Resolves symbols to quotes through the caches and provider adapters.

    Prices live in ``price_cache`` (transient), overviews in ``overview_cache``
    (durable when a store file is configured).
    """

    def __init__(
        self,
        price_cache: Cache,
        overview_cache: Cache,
        alpha_vantage: AlphaVantageClient,
        gold_api: GoldApiClient,
    ):
        self.price_cache = price_cache
        self.overview_cache = overview_cache
        self.alpha_vantage = alpha_vantage
        self.gold_api = gold_api

    def fetch_overview(self, symbol: str) -> Overview:
        return self._cached_fetch(
            self.overview_cache, OVERVIEW_SECTION, symbol, "overview",
            self.alpha_vantage.fetch_overview, OVERVIEW_TTL, OVERVIEW_EMPTY_TTL,
        )

    def fetch_stock_price(self, symbol: str) -> Price:
        return self._cached_fetch(
            self.price_cache, PRICE_SECTION, symbol, "price",
            self.alpha_vantage.fetch_price, PRICE_TTL, PRICE_EMPTY_TTL,
        )

    def fetch_metal_price(self, symbol: str) -> Price:
        return self._cached_fetch(
            self.price_cache, PRICE_SECTION, symbol, "metal price",
            self.gold_api.fetch_price, PRICE_TTL, PRICE_EMPTY_TTL,
        )

    def get_quote(self, symbol: str) -> Quote:
        """Quote for one symbol. Blank ``symbol`` on the result means nothing was found."""
        symbol = symbol.upper()
        if is_metal(symbol):
            price = self.fetch_metal_price(symbol)
            return Quote.from_price(price, METAL_NAMES[symbol])

        # Independent lookups: a hit on one never forces a refetch of the other.
        overview = self.fetch_overview(symbol)
        price = self.fetch_stock_price(symbol)
        return Quote.from_price(price, overview.name)

    def lookup(self, symbols: list[str]) -> list[Quote]:
        """Quotes in input order, skipping empty ones.

        A provider failure on any symbol propagates and aborts the whole lookup.
        """
        quotes = []
        for symbol in symbols:
            quote = self.get_quote(symbol)
            if quote.symbol:
                quotes.append(quote)
        return quotes

    @property
    def backends(self) -> dict[str, str]:
        return {"price": self.price_cache.backend, "overview": self.overview_cache.backend}

    def close(self) -> None:
        self.alpha_vantage.close()
        self.gold_api.close()
        self.price_cache.close()
        self.overview_cache.close()

    def _cached_fetch(
        self,
        cache: Cache,
        section: str,
        symbol: str,
        label: str,
        fetch: Callable[[str], Overview | Price],
        ttl: int,
        empty_ttl: int,
    ):
        cached = cache.lookup(section, symbol)
        if cached is not None:
            logger.info("Returning cached %s for %s", label, symbol)
            return cached

        logger.info("Fetching %s for %s", label, symbol)
        result = fetch(symbol)
        cache.set(section, symbol, result, ttl if result.symbol else empty_ttl)
        return result
