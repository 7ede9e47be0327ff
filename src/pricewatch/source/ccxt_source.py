"""Price source backed by a ccxt async exchange.

Asset USD prices come from the ASSET/<quote_currency> ticker (USDT by
default). Cross-asset rates come from the BASE/QUOTE ticker.
"""

from decimal import Decimal, InvalidOperation

import ccxt.async_support as ccxt_async

from pricewatch.config import SourceSettings
from pricewatch.exceptions import UpstreamError
from pricewatch.logging import get_logger
from pricewatch.models import PriceQuote
from pricewatch.source.client import PriceSource

logger = get_logger(__name__)


def _to_decimal(value: object, field: str, symbol: str) -> Decimal:
    if value is None:
        raise UpstreamError(f"Ticker {symbol} missing field {field!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise UpstreamError(f"Ticker {symbol} has malformed {field!r}: {value!r}") from e


def _optional_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


class CcxtPriceSource(PriceSource):
    """Concrete price source using any ccxt async exchange."""

    def __init__(self, settings: SourceSettings, exchange: ccxt_async.Exchange | None = None) -> None:
        self._settings = settings
        if exchange is None:
            exchange_cls = getattr(ccxt_async, settings.exchange_id, None)
            if exchange_cls is None:
                raise ValueError(f"Unknown ccxt exchange: {settings.exchange_id}")
            exchange = exchange_cls(
                {
                    "apiKey": settings.api_key.get_secret_value(),
                    "secret": settings.api_secret.get_secret_value(),
                    "enableRateLimit": True,
                    "timeout": int(settings.request_timeout * 1000),
                }
            )
        self._exchange = exchange

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Load markets so currency names are available."""
        logger.info("connecting_price_source", exchange=self._settings.exchange_id)
        try:
            markets = await self._exchange.load_markets()
        except ccxt_async.BaseError as e:
            raise UpstreamError(f"Failed to load markets: {e}") from e
        logger.info(
            "price_source_connected",
            exchange=self._settings.exchange_id,
            market_count=len(markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid leaking sessions."""
        await self._exchange.close()
        logger.info("price_source_closed", exchange=self._settings.exchange_id)

    async def fetch_price(self, asset_symbol: str) -> PriceQuote:
        market = f"{asset_symbol}/{self._settings.quote_currency}"
        ticker = await self._fetch_ticker(market)

        usd_price = _to_decimal(ticker.get("last"), "last", market)
        if usd_price < 0:
            raise UpstreamError(f"Ticker {market} returned negative price {usd_price}")
        usd_change = _optional_decimal(ticker.get("change"))

        return PriceQuote(
            asset_symbol=asset_symbol,
            name=self._currency_name(asset_symbol),
            usd_price=usd_price,
            pct_change_24h=_optional_decimal(ticker.get("percentage")),
            usd_change_24h=usd_change,
            # value change of a one-unit holding
            usd_value_change_24h=usd_change,
        )

    async def fetch_exchange_rate(self, base_asset: str, quote_asset: str) -> Decimal:
        market = f"{base_asset}/{quote_asset}"
        ticker = await self._fetch_ticker(market)
        rate = _to_decimal(ticker.get("last"), "last", market)
        if rate <= 0:
            raise UpstreamError(f"Ticker {market} returned non-positive rate {rate}")
        return rate

    async def _fetch_ticker(self, market: str) -> dict:
        try:
            ticker = await self._exchange.fetch_ticker(market)
        except ccxt_async.BaseError as e:
            raise UpstreamError(f"Failed to fetch ticker {market}: {e}") from e
        if not isinstance(ticker, dict):
            raise UpstreamError(f"Ticker {market} returned unexpected payload")
        logger.debug("ticker_fetched", market=market, last=ticker.get("last"))
        return ticker

    def _currency_name(self, asset_symbol: str) -> str:
        currencies = getattr(self._exchange, "currencies", None) or {}
        currency = currencies.get(asset_symbol) or {}
        return currency.get("name") or asset_symbol
