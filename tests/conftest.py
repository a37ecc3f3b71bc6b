from __future__ import annotations

import threading

import httpx
import pytest

from services.cache import MemoryCache, StoreCache
from services.entry_store import EntryStore
from services.providers import AlphaVantageClient, GoldApiClient
from services.quotes import QuoteService

AAPL_OVERVIEW = {
    "Symbol": "AAPL",
    "AssetType": "Common Stock",
    "Name": "Apple Inc",
    "Description": "Apple Inc. designs consumer electronics.",
    "Exchange": "NASDAQ",
}

AAPL_GLOBAL_QUOTE = {
    "01. symbol": "AAPL",
    "02. open": "189.0000",
    "03. high": "191.5000",
    "04. low": "188.2000",
    "05. price": "190.1000",
    "06. volume": "51234567",
    "07. latest trading day": "2024-05-10",
    "08. previous close": "188.9000",
}

XAU_SPOT = {
    "timestamp": 1715350000,
    "metal": "XAU",
    "currency": "USD",
    "exchange": "FOREXCOM",
    "symbol": "FOREXCOM:XAUUSD",
    "prev_close_price": 1895.1,
    "open_price": 1890.0,
    "low_price": 1885.2,
    "high_price": 1905.7,
    "price": 1900.5,
    "ask": 1900.9,
    "bid": 1900.1,
}


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += minutes * 60 + seconds


class FakeUpstream:
    """Stands in for AlphaVantage and GoldAPI behind httpx.MockTransport."""

    def __init__(self):
        self.overviews: dict[str, dict] = {"AAPL": AAPL_OVERVIEW}
        self.quotes: dict[str, dict] = {"AAPL": AAPL_GLOBAL_QUOTE}
        self.metals: dict[str, dict] = {"XAU": XAU_SPOT}
        self.calls: list[tuple[str, str]] = []
        self.status_code = 200
        self.barrier: threading.Barrier | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        if request.url.host == "www.alphavantage.co":
            function = request.url.params["function"]
            symbol = request.url.params["symbol"]
            self.calls.append((function, symbol))
            if function == "OVERVIEW":
                body = self.overviews.get(symbol, {})
            else:
                body = {"Global Quote": self.quotes.get(symbol, {})}
        else:
            metal = request.url.path.split("/")[2]
            self.calls.append(("METAL", metal))
            body = self.metals.get(metal, {})

        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "upstream unavailable"})
        return httpx.Response(200, json=body)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def entry_store(tmp_path):
    store = EntryStore.open(tmp_path / "quotes.db")
    store.create_tables()
    yield store
    store.dispose()


@pytest.fixture
def memory_cache(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def store_cache(entry_store, clock):
    return StoreCache(entry_store, clock=clock)


@pytest.fixture(params=["memory", "store"])
def cache(request, memory_cache, store_cache):
    return memory_cache if request.param == "memory" else store_cache


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def quote_service(upstream, memory_cache, store_cache):
    transport = httpx.MockTransport(upstream.handler)
    service = QuoteService(
        price_cache=memory_cache,
        overview_cache=store_cache,
        alpha_vantage=AlphaVantageClient("demo-key", client=httpx.Client(transport=transport)),
        gold_api=GoldApiClient("demo-token", client=httpx.Client(transport=transport)),
    )
    yield service
    service.alpha_vantage.close()
    service.gold_api.close()
