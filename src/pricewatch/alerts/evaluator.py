"""Alert evaluation for freshly sampled prices.

Two independent checks run per asset per cycle:

1. Volatility: compare the current price against the most recent stored
   sample at or before ``now - window``. Fires when
   ``(current - reference) / current * 100`` is strictly above the
   threshold. No reference sample means insufficient history: skip.
2. Threshold: every user rule for the asset whose target price is strictly
   below the current price fires, addressed to the rule's email.

Rules are never deactivated after firing; they fire again on every cycle
the condition holds. The evaluator only builds Notification payloads,
delivery is the scheduler's job.
"""

from decimal import Decimal

from pricewatch.config import TrackerSettings
from pricewatch.data.store import PriceStore
from pricewatch.logging import get_logger
from pricewatch.models import AlertRule, Notification, NotificationKind, PriceSample

logger = get_logger(__name__)


class AlertEvaluator:
    """Decides which notifications a new price point triggers.

    Args:
        store: Source of reference samples and alert rules.
        settings: Volatility threshold, window and fixed recipient.
    """

    def __init__(self, store: PriceStore, settings: TrackerSettings) -> None:
        self._store = store
        self._settings = settings

    async def evaluate(
        self, asset_symbol: str, current_price: Decimal, now_ms: int
    ) -> list[Notification]:
        """Run both checks. A failure in one check does not suppress the other."""
        notifications: list[Notification] = []

        try:
            volatility = await self.check_volatility(asset_symbol, current_price, now_ms)
            if volatility is not None:
                notifications.append(volatility)
        except Exception as e:
            logger.error(
                "volatility_check_failed",
                asset_symbol=asset_symbol,
                error=str(e),
            )

        try:
            notifications.extend(await self.check_thresholds(asset_symbol, current_price))
        except Exception as e:
            logger.error(
                "threshold_check_failed",
                asset_symbol=asset_symbol,
                error=str(e),
            )

        return notifications

    async def check_volatility(
        self, asset_symbol: str, current_price: Decimal, now_ms: int
    ) -> Notification | None:
        """Return a notification if the price rose more than the threshold over the window."""
        if current_price == 0:
            logger.debug("volatility_check_zero_price", asset_symbol=asset_symbol)
            return None

        cutoff_ms = now_ms - self._settings.volatility_window_seconds * 1000
        reference = await self._store.get_latest_sample_before(asset_symbol, cutoff_ms)
        if reference is None:
            logger.debug("volatility_check_no_history", asset_symbol=asset_symbol)
            return None

        change_pct = (current_price - reference.usd_price) / current_price * Decimal("100")
        logger.debug(
            "volatility_checked",
            asset_symbol=asset_symbol,
            reference_price=str(reference.usd_price),
            current_price=str(current_price),
            change_pct=str(change_pct),
        )

        if change_pct <= self._settings.volatility_threshold_pct:
            return None

        return self._volatility_notification(reference, current_price)

    async def check_thresholds(
        self, asset_symbol: str, current_price: Decimal
    ) -> list[Notification]:
        """Return one notification per rule whose target price is below the current price."""
        rules = await self._store.get_rules_below(asset_symbol, current_price)
        if rules:
            logger.info(
                "threshold_rules_triggered",
                asset_symbol=asset_symbol,
                count=len(rules),
                current_price=str(current_price),
            )
        return [self._threshold_notification(rule, current_price) for rule in rules]

    def _volatility_notification(
        self, reference: PriceSample, current_price: Decimal
    ) -> Notification:
        threshold = self._settings.volatility_threshold_pct
        return Notification(
            recipient=self._settings.volatility_recipient,
            subject=f"Price Alert: {reference.name} price increased by more than {threshold}%",
            body=(
                f"The price of {reference.name} has increased by more than {threshold}%. "
                f"Old price: ${reference.usd_price}, New price: ${current_price}."
            ),
            kind=NotificationKind.VOLATILITY,
        )

    @staticmethod
    def _threshold_notification(rule: AlertRule, current_price: Decimal) -> Notification:
        return Notification(
            recipient=rule.recipient_email,
            subject=f"Price Alert: {rule.asset_symbol} price exceeded ${rule.target_price}",
            body=(
                f"The price of {rule.asset_symbol} has exceeded your set limit of "
                f"${rule.target_price}. Current price: ${current_price}."
            ),
            kind=NotificationKind.THRESHOLD,
        )
