"""Abstract price source interface.

Scheduler and query code depend only on this interface, keeping the
upstream provider's details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from pricewatch.models import PriceQuote


class PriceSource(ABC):
    """Abstract base class for upstream price providers."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the connection and load market metadata."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def fetch_price(self, asset_symbol: str) -> PriceQuote:
        """Fetch the latest USD price and 24h change fields for an asset.

        Raises UpstreamError if the provider fails or the response is malformed.
        """
        ...

    @abstractmethod
    async def fetch_exchange_rate(self, base_asset: str, quote_asset: str) -> Decimal:
        """Fetch how many units of quote_asset one unit of base_asset buys.

        Raises UpstreamError if the provider fails or the response is malformed.
        """
        ...
