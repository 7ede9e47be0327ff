"""Shared test fixtures for the price watch service."""

from decimal import Decimal

import pytest
import pytest_asyncio

from pricewatch.config import (
    AppSettings,
    NotifierSettings,
    SourceSettings,
    StorageSettings,
    SwapSettings,
    TrackerSettings,
)
from pricewatch.data.database import PriceDatabase
from pricewatch.data.store import PriceStore
from pricewatch.models import PriceQuote, PriceSample

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000.0
NOW_MS = int(NOW * 1000)
HOUR_MS = 60 * 60 * 1000


def make_sample(
    usd_price: str | Decimal,
    timestamp_ms: int,
    asset_symbol: str = "ETH",
    name: str = "Ether",
) -> PriceSample:
    return PriceSample(
        asset_symbol=asset_symbol,
        name=name,
        usd_price=Decimal(usd_price),
        pct_change_24h=Decimal("1.5"),
        usd_change_24h=Decimal("45"),
        usd_value_change_24h=Decimal("45"),
        timestamp_ms=timestamp_ms,
    )


def make_quote(asset_symbol: str, usd_price: str | Decimal, name: str | None = None) -> PriceQuote:
    return PriceQuote(
        asset_symbol=asset_symbol,
        name=name or asset_symbol,
        usd_price=Decimal(usd_price),
    )


@pytest.fixture
def tracker_settings() -> TrackerSettings:
    return TrackerSettings(
        assets=["ETH", "POL"],
        interval_seconds=300,
        volatility_threshold_pct=Decimal("3"),
        volatility_window_seconds=3600,
        volatility_recipient="ops@example.com",
    )


@pytest.fixture
def settings(tracker_settings: TrackerSettings, tmp_path) -> AppSettings:
    """AppSettings with short timeouts and a temporary database path."""
    return AppSettings(
        log_level="DEBUG",
        source=SourceSettings(exchange_id="binance", request_timeout=0.2),
        tracker=tracker_settings,
        swap=SwapSettings(),
        notifier=NotifierSettings(host="localhost", send_timeout=0.2),
        storage=StorageSettings(db_path=str(tmp_path / "prices.db")),
    )


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected PriceDatabase backed by a file in tmp_path."""
    async with PriceDatabase(str(tmp_path / "data" / "prices.db")) as db:
        yield db


@pytest_asyncio.fixture
async def store(database: PriceDatabase) -> PriceStore:
    return PriceStore(database)
