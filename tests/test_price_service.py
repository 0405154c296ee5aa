import asyncio

import aiohttp
import pytest

from bitacora.services.price_service import PriceService


class FakeResponse:
    def __init__(self, payload, delay=0.0):
        self.payload = payload
        self.delay = delay

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        return None

    async def json(self, content_type=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.payload


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.closed = False
        self.calls = []

    def get(self, url, params=None, timeout=None):
        key = (params["function"], params.get("symbol") or params.get("keywords"))
        self.calls.append(key)
        result = self.routes.get(key, {})
        if isinstance(result, Exception):
            raise result
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(result)

    async def close(self):
        self.closed = True


def quote(price):
    return {"Global Quote": {"01. symbol": "X", "05. price": price}}


def make_service(routes, timeout_seconds=1.0):
    service = PriceService(api_key="demo", enabled=True, timeout_seconds=timeout_seconds)
    service._session = FakeSession(routes)
    return service


@pytest.mark.asyncio
async def test_get_price_parses_global_quote():
    service = make_service({("GLOBAL_QUOTE", "AAPL"): quote("227.5200")})
    assert await service.get_price(" aapl ") == pytest.approx(227.52)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute."},
        {"Information": "This is a premium endpoint."},
        {"Error Message": "Invalid API call."},
        {"Global Quote": {}},
        quote("not-a-number"),
        quote("0"),
        [],
    ],
)
async def test_unavailable_payloads_return_none(payload):
    service = make_service({("GLOBAL_QUOTE", "AAPL"): payload})
    assert await service.get_price("AAPL") is None


@pytest.mark.asyncio
async def test_transport_errors_return_none():
    service = make_service({
        ("GLOBAL_QUOTE", "AAPL"): aiohttp.ClientConnectionError("connection reset"),
        ("GLOBAL_QUOTE", "MSFT"): asyncio.TimeoutError(),
    })
    assert await service.get_price("AAPL") is None
    assert await service.get_price("MSFT") is None
    metrics = service.get_metrics()
    assert metrics["errors"] == 1
    assert metrics["timeouts"] == 1


@pytest.mark.asyncio
async def test_get_name_picks_exact_symbol_match():
    service = make_service({
        ("SYMBOL_SEARCH", "INTC"): {
            "bestMatches": [
                {"1. symbol": "INTC.TRT", "2. name": "Intel Corp (Toronto)"},
                {"1. symbol": "INTC", "2. name": "Intel Corporation"},
            ]
        }
    })
    assert await service.get_name("intc") == "Intel Corporation"


@pytest.mark.asyncio
async def test_slow_ticker_times_out_without_blocking_others():
    service = make_service(
        {
            ("GLOBAL_QUOTE", "SLOW"): FakeResponse(quote("10"), delay=1.0),
            ("GLOBAL_QUOTE", "FAST"): quote("20"),
            ("SYMBOL_SEARCH", "FAST"): {"bestMatches": [{"1. symbol": "FAST", "2. name": "Fast Inc"}]},
        },
        timeout_seconds=0.05,
    )
    quotes = await service.get_quotes(["slow", "FAST", "fast"])
    assert set(quotes) == {"SLOW", "FAST"}
    assert quotes["SLOW"] == {"price": None, "name": None}
    assert quotes["FAST"] == {"price": 20.0, "name": "Fast Inc"}


@pytest.mark.asyncio
async def test_disabled_service_makes_no_requests():
    service = PriceService(api_key=None, enabled=True)
    session = FakeSession({("GLOBAL_QUOTE", "AAPL"): quote("1")})
    service._session = session
    assert await service.get_price("AAPL") is None
    assert await service.get_name("AAPL") is None
    assert session.calls == []


@pytest.mark.asyncio
async def test_close_releases_session():
    service = make_service({})
    session = service._session
    await service.close()
    assert session.closed
    assert service._session is None


class TrackedResponse(FakeResponse):
    def __init__(self, payload, tracker):
        super().__init__(payload, delay=0.05)
        self.tracker = tracker

    async def json(self, content_type=None):
        self.tracker["in_flight"] += 1
        self.tracker["peak"] = max(self.tracker["peak"], self.tracker["in_flight"])
        try:
            return await super().json(content_type)
        finally:
            self.tracker["in_flight"] -= 1


@pytest.mark.asyncio
async def test_price_and_name_lookups_run_together():
    tracker = {"in_flight": 0, "peak": 0}
    search = {"bestMatches": [{"1. symbol": "AAPL", "2. name": "Apple Inc"}]}
    service = make_service({
        ("GLOBAL_QUOTE", "AAPL"): TrackedResponse(quote("227.52"), tracker),
        ("SYMBOL_SEARCH", "AAPL"): TrackedResponse(search, tracker),
    })

    quotes = await service.get_quotes(["AAPL"])

    assert quotes["AAPL"] == {"price": pytest.approx(227.52), "name": "Apple Inc"}
    assert tracker["peak"] == 2
