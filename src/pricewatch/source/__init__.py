"""Upstream price source layer -- ccxt-backed price and exchange-rate lookups."""

from pricewatch.source.ccxt_source import CcxtPriceSource
from pricewatch.source.client import PriceSource

__all__ = ["CcxtPriceSource", "PriceSource"]
