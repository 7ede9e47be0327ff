"""Alert rule evaluation."""

from pricewatch.alerts.evaluator import AlertEvaluator

__all__ = ["AlertEvaluator"]
