"""Hour-of-day aggregation of price samples.

Pure Decimal statistics over PriceSample sequences. Samples are bucketed
by the local hour-of-day of their timestamp (0-23), not by elapsed hour:
two samples from different days with the same hour land in the same
bucket. Callers pass a trailing 24h window, so in practice only the
oldest and newest partial hours can collapse together.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, tzinfo
from decimal import Decimal

from pricewatch.models import HourBucket, PriceSample


def _hour_of_day(timestamp_ms: int, tz: tzinfo | None) -> int:
    # tz=None converts to the process local time zone
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).hour


def usd_price(sample: PriceSample) -> Decimal:
    """Default field selector: the sample's USD price."""
    return sample.usd_price


def group_by_hour(
    samples: Sequence[PriceSample],
    value: Callable[[PriceSample], Decimal] = usd_price,
    tz: tzinfo | None = None,
) -> list[HourBucket]:
    """Group samples by hour-of-day and compute mean, min and max of one field.

    Args:
        samples: Samples ordered oldest-first. Never mutated.
        value: Selects the numeric field to aggregate (default usd_price).
        tz: Time zone used to read the hour; None means local time.

    Returns:
        One HourBucket per hour present, in first-seen order. Consumers
        must not rely on the order. Empty input returns an empty list.
    """
    grouped: dict[int, list[Decimal]] = {}
    for sample in samples:
        hour = _hour_of_day(sample.timestamp_ms, tz)
        grouped.setdefault(hour, []).append(value(sample))

    buckets = []
    for hour, values in grouped.items():
        # summed in input order
        total = sum(values, Decimal("0"))
        buckets.append(
            HourBucket(
                hour_label=f"{hour} hour",
                average_price=total / Decimal(len(values)),
                min_price=min(values),
                max_price=max(values),
            )
        )
    return buckets
