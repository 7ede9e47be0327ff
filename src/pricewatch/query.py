"""On-demand read and registration operations.

Serves the HTTP layer: hourly statistics over the trailing 24h, alert
rule registration, and swap quotes. Unlike the scheduler, failures here
propagate to the caller as UpstreamError, PersistenceError or
InvalidArgument so they can be mapped to user-visible responses.
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal, InvalidOperation

from pricewatch.analysis.aggregator import group_by_hour
from pricewatch.config import SourceSettings, SwapSettings
from pricewatch.data.store import PriceStore
from pricewatch.exceptions import InvalidArgument, UpstreamError
from pricewatch.logging import get_logger
from pricewatch.models import AlertRule, HourBucket, SwapQuote
from pricewatch.source.client import PriceSource

logger = get_logger(__name__)

_HOURLY_WINDOW_MS = 24 * 60 * 60 * 1000


def _as_decimal(value: object, field: str) -> Decimal:
    """Coerce int, float, str or Decimal input to Decimal; InvalidArgument otherwise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidArgument(f"{field} must be a number, got {value!r}") from e


class QueryService:
    """Read path over the store and price source.

    Args:
        store: Sample and rule persistence.
        price_source: Upstream price provider for swap quotes.
        swap_settings: Source/target assets and fee rate for swap quotes.
        source_settings: Request timeout for upstream calls.
        clock: Returns the current Unix time in seconds (injectable for tests).
    """

    def __init__(
        self,
        store: PriceStore,
        price_source: PriceSource,
        swap_settings: SwapSettings | None = None,
        source_settings: SourceSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._price_source = price_source
        self._swap = swap_settings or SwapSettings()
        self._source = source_settings or SourceSettings()
        self._clock = clock

    async def get_hourly_prices(self, asset_symbol: str) -> list[HourBucket]:
        """Aggregate the trailing 24h of samples for an asset by hour-of-day.

        Returns an empty list when the window holds no samples.
        """
        now_ms = int(self._clock() * 1000)
        samples = await self._store.get_samples(
            asset_symbol,
            since_ms=now_ms - _HOURLY_WINDOW_MS,
            until_ms=now_ms,
        )
        buckets = group_by_hour(samples)
        logger.debug(
            "hourly_prices_computed",
            asset_symbol=asset_symbol,
            samples=len(samples),
            buckets=len(buckets),
        )
        return buckets

    async def set_alert(
        self, asset_symbol: str, target_price: Decimal | int | float | str, email: str
    ) -> AlertRule:
        """Validate and persist a threshold rule.

        Raises:
            InvalidArgument: empty asset symbol or email, or target_price is not
                a positive number. Nothing is written.
            PersistenceError: the store rejected the write.
        """
        target_price = _as_decimal(target_price, "target_price")
        if not asset_symbol or not asset_symbol.strip():
            raise InvalidArgument("asset_symbol must not be empty")
        if not email or not email.strip():
            raise InvalidArgument("email must not be empty")
        if not target_price.is_finite() or target_price <= 0:
            raise InvalidArgument(f"target_price must be positive, got {target_price}")

        rule = AlertRule(
            asset_symbol=asset_symbol.strip(),
            target_price=target_price,
            recipient_email=email.strip(),
            created_at_ms=int(self._clock() * 1000),
        )
        try:
            saved = await self._store.insert_rule(rule)
        except Exception:
            logger.error(
                "alert_rule_create_failed",
                asset_symbol=rule.asset_symbol,
                target_price=str(rule.target_price),
                email=rule.recipient_email,
            )
            raise

        logger.info(
            "alert_rule_created",
            rule_id=saved.id,
            asset_symbol=saved.asset_symbol,
            target_price=str(saved.target_price),
        )
        return saved

    async def get_swap_rate(self, source_amount: Decimal | int | float | str) -> SwapQuote:
        """Quote a swap of source_amount of the source asset into the target asset.

        fee = amount * fee_rate, charged in the source asset;
        output = (amount - fee) * exchange_rate.

        Raises:
            InvalidArgument: source_amount is not a number or is <= 0.
            UpstreamError: either upstream fetch failed or timed out.
        """
        source_amount = _as_decimal(source_amount, "source_amount")
        if not source_amount.is_finite() or source_amount <= 0:
            raise InvalidArgument(f"source_amount must be positive, got {source_amount}")

        source_asset = self._swap.source_asset
        timeout = self._source.request_timeout
        rate_task = asyncio.create_task(
            self._price_source.fetch_exchange_rate(source_asset, self._swap.target_asset)
        )
        price_task = asyncio.create_task(self._price_source.fetch_price(source_asset))
        try:
            exchange_rate, source_quote = await asyncio.wait_for(
                asyncio.gather(rate_task, price_task), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"Upstream quote timed out after {timeout}s") from e
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"Upstream quote failed: {e}") from e
        finally:
            # cancel whichever fetch is still pending
            for task in (rate_task, price_task):
                if not task.done():
                    task.cancel()

        fee = source_amount * self._swap.fee_rate
        fee_usd = fee * source_quote.usd_price
        output_amount = (source_amount - fee) * exchange_rate

        return SwapQuote(
            output_amount=output_amount,
            fee_in_source_asset=fee,
            fee_in_usd=fee_usd,
        )
