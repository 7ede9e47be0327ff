"""Read-path analytics over stored price samples."""

from pricewatch.analysis.aggregator import group_by_hour

__all__ = ["group_by_hour"]
