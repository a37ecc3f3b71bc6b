from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from app import build_quote_service, create_app
from config import Settings
from services.cache import MemoryCache
from services.entry_store import initialize_database
from services.providers import AlphaVantageClient, GoldApiClient
from services.quotes import QuoteService


@pytest.fixture
def app_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("STATIC_DIR", str(tmp_path / "static"))
    monkeypatch.setenv("GIT_SHA", "abc123")
    return Settings()


@pytest.fixture
def client(app_settings, quote_service):
    return TestClient(create_app(app_settings, quote_service))


def test_lookup_requires_sym(client, upstream):
    resp = client.get("/api/lookup/")
    assert resp.status_code == 401
    assert resp.json() == {"error": "sym required"}

    assert client.get("/api/lookup/", params={"sym": " , "}).status_code == 401
    assert upstream.calls == []


def test_lookup_metal(client):
    resp = client.get("/api/lookup/", params={"sym": "XAU"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/json"
    assert resp.json() == [
        {
            "symbol": "XAU",
            "name": "Spot Gold",
            "date": "2024-05-10T14:06:40Z",
            "open": 1890.0,
            "high": 1905.7,
            "low": 1885.2,
            "price": 1900.5,
            "volume": 0.0,
        }
    ]


def test_lookup_multiple_symbols_in_order(client):
    resp = client.get("/api/lookup/", params={"sym": "aapl,zzzz,xau"})
    assert resp.status_code == 200
    body = resp.json()
    assert [q["symbol"] for q in body] == ["AAPL", "XAU"]
    assert body[0]["name"] == "Apple Inc"
    assert list(body[0]) == ["symbol", "name", "date", "open", "high", "low", "price", "volume"]


def test_lookup_unknown_symbol_returns_empty_array(client):
    resp = client.get("/api/lookup/", params={"sym": "ZZZZ"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_repeat_lookup_makes_no_upstream_calls(client, upstream):
    client.get("/api/lookup/", params={"sym": "AAPL"})
    calls = len(upstream.calls)
    assert client.get("/api/lookup/", params={"sym": "AAPL"}).status_code == 200
    assert len(upstream.calls) == calls


def test_provider_failure_is_a_server_error(client, upstream):
    upstream.status_code = 502
    resp = client.get("/api/lookup/", params={"sym": "XAU,AAPL"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Server error."}


def test_ready_reports_cache_backends(client):
    resp = client.get("/ready")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "service": "quote-cache",
        "commit": "abc123",
        "cache": {"price": "memory", "overview": "store"},
    }


def test_security_headers(client):
    resp = client.get("/ready")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_inspect_durable_entry(client, clock):
    assert client.get("/api/cache/overview/AAPL").status_code == 404

    client.get("/api/lookup/", params={"sym": "AAPL"})
    resp = client.get("/api/cache/overview/aapl")
    assert resp.status_code == 200
    assert resp.json() == {
        "key": "overview:AAPL",
        "type": "Overview",
        "expires_at": clock.now + 24 * 3600,
        "expired": False,
    }


def test_inspect_rejects_bad_section(client):
    resp = client.get("/api/cache/bad:section/AAPL")
    assert resp.status_code == 400


def test_remove_entry_and_reset(client, upstream, quote_service):
    client.get("/api/lookup/", params={"sym": "AAPL,XAU"})

    assert client.delete("/api/cache/overview/AAPL").status_code == 204
    assert client.delete("/api/cache/overview/AAPL").status_code == 204
    assert client.get("/api/cache/overview/AAPL").status_code == 404
    assert quote_service.price_cache.lookup("price", "AAPL") is not None

    assert client.delete("/api/cache").status_code == 204
    assert quote_service.price_cache.lookup("price", "XAU") is None

    upstream.calls.clear()
    client.get("/api/lookup/", params={"sym": "XAU"})
    assert upstream.calls == [("METAL", "XAU")]


def test_inspect_without_durable_store_is_not_found(app_settings, upstream, clock):
    transport = httpx.MockTransport(upstream.handler)
    service = QuoteService(
        price_cache=MemoryCache(clock=clock),
        overview_cache=MemoryCache(clock=clock),
        alpha_vantage=AlphaVantageClient("k", client=httpx.Client(transport=transport)),
        gold_api=GoldApiClient("t", client=httpx.Client(transport=transport)),
    )
    client = TestClient(create_app(app_settings, service))
    client.get("/api/lookup/", params={"sym": "AAPL"})

    resp = client.get("/api/cache/overview/AAPL")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found: overview:AAPL"}


def test_static_files_are_served(app_settings, quote_service):
    static = Path(app_settings.static_dir)
    static.mkdir()
    (static / "index.html").write_text("<h1>quotes</h1>")
    (static / "coffee.ico").write_bytes(b"\x00\x00\x01\x00")

    client = TestClient(create_app(app_settings, quote_service))
    assert client.get("/static/index.html").text == "<h1>quotes</h1>"
    assert client.get("/favicon.ico").content == b"\x00\x00\x01\x00"


def test_unexpected_errors_are_internal_server_errors(app_settings, quote_service, monkeypatch):
    def boom(symbols):
        raise RuntimeError("boom")

    monkeypatch.setattr(quote_service, "lookup", boom)
    client = TestClient(create_app(app_settings, quote_service), raise_server_exceptions=False)
    resp = client.get("/api/lookup/", params={"sym": "AAPL"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_bad_metal_timestamp_is_a_server_error(client, upstream, quote_service):
    upstream.metals["XAG"] = {"metal": "XAG", "price": 23.1, "timestamp": 1715350000000}
    resp = client.get("/api/lookup/", params={"sym": "XAG"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Server error."}
    assert quote_service.price_cache.lookup("price", "XAG") is None


def test_build_quote_service_requires_existing_store(tmp_path, monkeypatch):
    missing = tmp_path / "missing.db"
    monkeypatch.setenv("CACHE_DB_PATH", str(missing))
    with pytest.raises(FileNotFoundError, match="quote-cache -i"):
        build_quote_service(Settings())
    assert not missing.exists()


def test_build_quote_service_uses_initialized_store(tmp_path, monkeypatch):
    path = tmp_path / "quotes.db"
    initialize_database(path)
    monkeypatch.setenv("CACHE_DB_PATH", str(path))

    service = build_quote_service(Settings())
    try:
        assert service.backends == {"price": "memory", "overview": "store"}
    finally:
        service.close()
