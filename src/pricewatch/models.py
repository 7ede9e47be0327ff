"""Shared data models for the price watch service.

All monetary values use Decimal. Never use float for prices, rates, or fees.
Instants are Unix milliseconds.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class NotificationKind(str, Enum):
    """Which rule produced a notification."""

    VOLATILITY = "volatility"
    THRESHOLD = "threshold"


@dataclass(frozen=True)
class PriceQuote:
    """Latest price snapshot for one asset as returned by a PriceSource."""

    asset_symbol: str
    name: str
    usd_price: Decimal
    pct_change_24h: Decimal = Decimal("0")
    usd_change_24h: Decimal = Decimal("0")
    usd_value_change_24h: Decimal = Decimal("0")


@dataclass(frozen=True)
class PriceSample:
    """One persisted, timestamped price observation.

    Immutable once written. Stored in SQLite with prices as TEXT to
    preserve Decimal precision.
    """

    asset_symbol: str
    name: str
    usd_price: Decimal
    pct_change_24h: Decimal
    usd_change_24h: Decimal
    usd_value_change_24h: Decimal
    timestamp_ms: int

    @classmethod
    def from_quote(cls, quote: PriceQuote, timestamp_ms: int) -> "PriceSample":
        return cls(
            asset_symbol=quote.asset_symbol,
            name=quote.name,
            usd_price=quote.usd_price,
            pct_change_24h=quote.pct_change_24h,
            usd_change_24h=quote.usd_change_24h,
            usd_value_change_24h=quote.usd_value_change_24h,
            timestamp_ms=timestamp_ms,
        )


@dataclass(frozen=True)
class AlertRule:
    """A user-registered threshold rule: notify recipient_email once the
    asset trades above target_price."""

    asset_symbol: str
    target_price: Decimal
    recipient_email: str
    created_at_ms: int
    id: int | None = None


@dataclass(frozen=True)
class HourBucket:
    """Aggregate statistics for one hour-of-day bucket."""

    hour_label: str
    average_price: Decimal
    min_price: Decimal
    max_price: Decimal


@dataclass(frozen=True)
class SwapQuote:
    """Result of a swap-rate computation."""

    output_amount: Decimal
    fee_in_source_asset: Decimal
    fee_in_usd: Decimal


@dataclass(frozen=True)
class Notification:
    """A message ready to hand to a Notifier."""

    recipient: str
    subject: str
    body: str
    kind: NotificationKind


@dataclass
class CycleReport:
    """Outcome of one scheduler cycle."""

    started_at_ms: int
    fetched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    samples_written: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    skipped: bool = False
