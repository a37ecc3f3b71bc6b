"""Upstream quote provider adapters.

- AlphaVantage: company overview (OVERVIEW) and latest quote (GLOBAL_QUOTE).
- GoldAPI: spot price by metal code.

Adapters translate provider field names into the normalized Overview/Price
models. A provider that answers with nothing useful (unknown symbol, rate
limit note) yields an empty model, not an error. Network failures, non-2xx
responses, bodies that aren't JSON objects and unparseable metal timestamps
raise ProviderError.
"""

from datetime import datetime, timezone

import httpx

from errors import ProviderError
from schemas import Overview, Price


def _to_float(value) -> float:
    """Parse provider numbers, which arrive as strings or numbers. Blank/invalid -> 0.0."""
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_str(value) -> str:
    return "" if value is None else str(value)


def _get_json(client: httpx.Client, operation: str, url: str, **kwargs) -> dict:
    try:
        resp = client.get(url, **kwargs)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        # The request URL carries the API key, so it stays out of the message.
        raise ProviderError(operation, f"upstream returned HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise ProviderError(operation, f"request failed ({type(e).__name__})") from e
    except ValueError as e:
        raise ProviderError(operation, f"malformed response: {e}") from e
    if not isinstance(data, dict):
        raise ProviderError(operation, "malformed response: expected a JSON object")
    return data


# ---------------------------------------------------------------------------
# AlphaVantage
# ---------------------------------------------------------------------------


def normalize_overview(data: dict) -> Overview:
    return Overview(
        symbol=_to_str(data.get("Symbol")),
        asset_type=_to_str(data.get("AssetType")),
        name=_to_str(data.get("Name")),
        description=_to_str(data.get("Description")),
        exchange=_to_str(data.get("Exchange")),
    )


def normalize_global_quote(data: dict) -> Price:
    quote = data.get("Global Quote")
    if not isinstance(quote, dict):
        quote = {}
    return Price(
        symbol=_to_str(quote.get("01. symbol")),
        date=_to_str(quote.get("07. latest trading day")),
        open=_to_float(quote.get("02. open")),
        high=_to_float(quote.get("03. high")),
        low=_to_float(quote.get("04. low")),
        price=_to_float(quote.get("05. price")),
        volume=_to_float(quote.get("06. volume")),
    )


class AlphaVantageClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://www.alphavantage.co/query",
        client: httpx.Client | None = None,
        timeout: float = 10,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url
        self.client = client or httpx.Client(timeout=timeout)

    def fetch_overview(self, symbol: str) -> Overview:
        data = _get_json(
            self.client,
            "fetch_overview",
            self.base_url,
            params={"function": "OVERVIEW", "symbol": symbol, "apikey": self.api_key},
        )
        return normalize_overview(data)

    def fetch_price(self, symbol: str) -> Price:
        data = _get_json(
            self.client,
            "fetch_stock_price",
            self.base_url,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
        )
        return normalize_global_quote(data)

    def close(self) -> None:
        self.client.close()


# ---------------------------------------------------------------------------
# GoldAPI
# ---------------------------------------------------------------------------


def normalize_metal_price(data: dict) -> Price:
    metal = _to_str(data.get("metal"))
    timestamp = data.get("timestamp")
    date = ""
    if metal and isinstance(timestamp, (int, float)) and timestamp > 0:
        try:
            date = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        except (ValueError, OverflowError, OSError) as e:
            raise ProviderError("fetch_metal_price", f"malformed response: bad timestamp {timestamp!r}") from e
    return Price(
        symbol=metal,
        date=date,
        open=_to_float(data.get("open_price")),
        high=_to_float(data.get("high_price")),
        low=_to_float(data.get("low_price")),
        price=_to_float(data.get("price")),
    )


class GoldApiClient:
    def __init__(
        self,
        access_token: str | None,
        base_url: str = "https://www.goldapi.io/api",
        client: httpx.Client | None = None,
        timeout: float = 10,
    ):
        self.access_token = access_token or ""
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def fetch_price(self, metal: str) -> Price:
        data = _get_json(
            self.client,
            "fetch_metal_price",
            f"{self.base_url}/{metal}/USD",
            headers={"x-access-token": self.access_token},
        )
        return normalize_metal_price(data)

    def close(self) -> None:
        self.client.close()
