"""Price sample and alert rule persistence layer."""

from pricewatch.data.database import PriceDatabase
from pricewatch.data.store import PriceStore

__all__ = ["PriceDatabase", "PriceStore"]
