"""
Best-effort price and company-name lookups against Alpha Vantage.

Every failure mode (disabled, no key, rate limit, unknown symbol, timeout,
HTTP or decoding error) comes back as ``None``. Nothing here raises into
KPI computation.
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import aiohttp

from bitacora.services.normalization import normalize_ticker, optional_float

logger = logging.getLogger(__name__)


class PriceService:
    """Async client for the GLOBAL_QUOTE and SYMBOL_SEARCH endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        enabled: bool = True,
        timeout_seconds: float = 8.0,
        base_url: str = "https://www.alphavantage.co",
        max_concurrency: int = 4,
    ):
        self.api_key = api_key
        self.enabled = bool(enabled and api_key)
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(float(timeout_seconds), 0.1)
        self._semaphore = asyncio.Semaphore(max(1, int(max_concurrency)))
        self._session: Optional[aiohttp.ClientSession] = None
        self._metrics = {
            "requests": 0,
            "unavailable": 0,
            "timeouts": 0,
            "errors": 0,
        }

    @classmethod
    def from_settings(cls, settings) -> "PriceService":
        return cls(
            api_key=settings.ALPHA_VANTAGE_API_KEY,
            enabled=settings.PRICE_LOOKUP_ENABLED,
            timeout_seconds=settings.PRICE_LOOKUP_TIMEOUT_SECONDS,
            base_url=settings.PRICE_API_BASE_URL,
            max_concurrency=settings.PRICE_LOOKUP_MAX_CONCURRENCY,
        )

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_price(self, ticker: str) -> Optional[float]:
        """Latest price for ``ticker``, or None when unavailable."""
        symbol = normalize_ticker(ticker)
        payload = await self._query({"function": "GLOBAL_QUOTE", "symbol": symbol})
        if payload is None:
            return None
        quote = payload.get("Global Quote")
        price = optional_float(quote.get("05. price")) if isinstance(quote, dict) else None
        if price is None or price <= 0:
            logger.warning(f"No price found for {symbol}")
            self._metrics["unavailable"] += 1
            return None
        return price

    async def get_name(self, ticker: str) -> Optional[str]:
        """Display name for ``ticker`` from the best exact symbol match."""
        symbol = normalize_ticker(ticker)
        payload = await self._query({"function": "SYMBOL_SEARCH", "keywords": symbol})
        if payload is None:
            return None
        matches = payload.get("bestMatches")
        if not isinstance(matches, list):
            self._metrics["unavailable"] += 1
            return None
        for match in matches:
            if not isinstance(match, dict):
                continue
            if str(match.get("1. symbol", "")).strip().upper() == symbol:
                name = str(match.get("2. name", "")).strip()
                if name:
                    return name
        self._metrics["unavailable"] += 1
        return None

    async def get_quotes(self, tickers: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        Look up price and name for several tickers at once.

        Lookups run concurrently and fail independently; a slow ticker
        never holds back the others beyond its own timeout.
        """
        symbols = list(dict.fromkeys(normalize_ticker(t) for t in tickers if normalize_ticker(t)))
        if not symbols:
            return {}
        results = await asyncio.gather(
            *(self.get_price(symbol) for symbol in symbols),
            *(self.get_name(symbol) for symbol in symbols),
        )
        prices, names = results[:len(symbols)], results[len(symbols):]
        return {
            symbol: {"price": price, "name": name}
            for symbol, price, name in zip(symbols, prices, names)
        }

    async def _query(self, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        self._metrics["requests"] += 1
        query = dict(params, apikey=self.api_key)
        url = f"{self.base_url}/query"
        try:
            async with self._semaphore:
                payload = await asyncio.wait_for(self._fetch(url, query), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self._metrics["timeouts"] += 1
            logger.warning(f"Price lookup timed out for {params}")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            self._metrics["errors"] += 1
            logger.warning(f"Price lookup failed for {params}: {e}")
            return None

        if not isinstance(payload, dict):
            self._metrics["unavailable"] += 1
            return None
        # Alpha Vantage reports throttling and premium-only endpoints in-band
        notice = payload.get("Note") or payload.get("Information")
        if notice:
            logger.warning(f"Alpha Vantage limit reached: {notice}")
            self._metrics["unavailable"] += 1
            return None
        if payload.get("Error Message"):
            logger.warning(f"Alpha Vantage error: {payload['Error Message']}")
            self._metrics["unavailable"] += 1
            return None
        return payload

    async def _fetch(self, url: str, query: Dict[str, str]) -> Any:
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with session.get(url, params=query, timeout=timeout) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def get_metrics(self) -> Dict[str, int]:
        return dict(self._metrics)
