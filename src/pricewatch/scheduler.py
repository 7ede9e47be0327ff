"""Scheduled sampling-and-alerting pipeline.

Each cycle:
  1. FETCH: Request a price for every configured asset concurrently,
     each call bounded by the source request timeout
  2. PERSIST: Write all successfully fetched samples in one batch
  3. EVALUATE: Run volatility and threshold checks per fetched asset
  4. NOTIFY: Fan out all produced notifications concurrently

Failures are contained at the point they occur: a failed fetch drops that
asset from the cycle, a failed write or evaluation is logged, a failed
send affects only its recipient. Nothing propagates out of run_cycle().

Re-entrancy: cycles are serialized by a lock. A run_cycle() call that
arrives while another cycle is in progress is skipped (returns a report
with skipped=True). The loop waits ``interval - elapsed`` after each
cycle, so a slow cycle delays the next tick instead of overlapping it.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from pricewatch.alerts.evaluator import AlertEvaluator
from pricewatch.config import AppSettings
from pricewatch.data.store import PriceStore
from pricewatch.logging import get_logger
from pricewatch.models import CycleReport, Notification, PriceQuote, PriceSample
from pricewatch.notify.notifier import Notifier
from pricewatch.source.client import PriceSource

logger = get_logger(__name__)


class Scheduler:
    """Drives the fetch -> persist -> evaluate -> notify pipeline on a fixed interval.

    Args:
        settings: Application-wide settings.
        price_source: Upstream price provider.
        store: Sample and rule persistence.
        evaluator: Alert rule evaluation.
        notifier: Notification delivery.
        clock: Returns the current Unix time in seconds (injectable for tests).
    """

    def __init__(
        self,
        settings: AppSettings,
        price_source: PriceSource,
        store: PriceStore,
        evaluator: AlertEvaluator,
        notifier: Notifier,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._price_source = price_source
        self._store = store
        self._evaluator = evaluator
        self._notifier = notifier
        self._clock = clock
        self._running = False
        self._stop_event = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        self._cycle_count = 0
        self._last_report: CycleReport | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run cycles until stop() is called."""
        logger.info(
            "scheduler_starting",
            assets=self._settings.tracker.assets,
            interval_seconds=self._settings.tracker.interval_seconds,
        )
        self._running = True
        self._stop_event.clear()
        try:
            await self._run_loop()
        finally:
            self._running = False
            logger.info("scheduler_stopped")

    async def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        logger.info("scheduler_stopping")
        self._running = False
        self._stop_event.set()

    async def _run_loop(self) -> None:
        interval = self._settings.tracker.interval_seconds
        while self._running:
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error("scheduler_cycle_error", error=str(e), exc_info=True)

            delay = max(0.0, interval - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    async def run_cycle(self) -> CycleReport:
        """Execute one cycle, or skip it if another cycle is still in progress."""
        now_ms = int(self._clock() * 1000)

        if self._cycle_lock.locked():
            logger.warning("cycle_skipped_in_progress")
            return CycleReport(started_at_ms=now_ms, skipped=True)

        async with self._cycle_lock:
            self._cycle_count += 1
            with structlog.contextvars.bound_contextvars(cycle=self._cycle_count):
                report = await self._cycle(now_ms)

        self._last_report = report
        return report

    async def _cycle(self, now_ms: int) -> CycleReport:
        report = CycleReport(started_at_ms=now_ms)
        assets = self._settings.tracker.assets

        # 1. FETCH
        results = await asyncio.gather(*(self._fetch_one(asset) for asset in assets))
        quotes: dict[str, PriceQuote] = {}
        for asset, quote in zip(assets, results):
            if quote is None:
                report.failed.append(asset)
            else:
                quotes[asset] = quote
                report.fetched.append(asset)

        if not quotes:
            logger.warning("cycle_no_prices_fetched", failed=report.failed)
            return report

        # 2. PERSIST
        samples = [PriceSample.from_quote(q, now_ms) for q in quotes.values()]
        try:
            report.samples_written = await self._store.insert_samples(samples)
        except Exception as e:
            logger.error("sample_write_failed", count=len(samples), error=str(e))

        # 3. EVALUATE
        evaluations = await asyncio.gather(
            *(
                self._evaluator.evaluate(asset, quote.usd_price, now_ms)
                for asset, quote in quotes.items()
            ),
            return_exceptions=True,
        )
        notifications: list[Notification] = []
        for asset, result in zip(quotes, evaluations):
            if isinstance(result, BaseException):
                logger.error("alert_evaluation_failed", asset_symbol=asset, error=str(result))
                continue
            notifications.extend(result)

        # 4. NOTIFY
        if notifications:
            sent = await asyncio.gather(*(self._send_one(n) for n in notifications))
            report.notifications_sent = sum(1 for ok in sent if ok)
            report.notifications_failed = len(sent) - report.notifications_sent

        logger.info(
            "cycle_complete",
            fetched=report.fetched,
            failed=report.failed,
            samples_written=report.samples_written,
            notifications_sent=report.notifications_sent,
            notifications_failed=report.notifications_failed,
        )
        return report

    async def _fetch_one(self, asset_symbol: str) -> PriceQuote | None:
        """Fetch one asset's price; None on any failure or timeout."""
        timeout = self._settings.source.request_timeout
        try:
            return await asyncio.wait_for(
                self._price_source.fetch_price(asset_symbol), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning("price_fetch_timeout", asset_symbol=asset_symbol, timeout=timeout)
        except Exception as e:
            logger.warning("price_fetch_failed", asset_symbol=asset_symbol, error=str(e))
        return None

    async def _send_one(self, notification: Notification) -> bool:
        """Deliver one notification; False on failure. Never raises."""
        timeout = self._settings.notifier.send_timeout
        try:
            await asyncio.wait_for(
                self._notifier.send(
                    notification.recipient, notification.subject, notification.body
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "notification_timeout",
                recipient=notification.recipient,
                kind=notification.kind.value,
                timeout=timeout,
            )
            return False
        except Exception as e:
            logger.error(
                "notification_failed",
                recipient=notification.recipient,
                kind=notification.kind.value,
                error=str(e),
            )
            return False

        logger.info(
            "notification_sent",
            recipient=notification.recipient,
            kind=notification.kind.value,
        )
        return True

    def get_status(self) -> dict:
        """Return scheduler status for the HTTP API."""
        report = self._last_report
        return {
            "running": self._running,
            "cycle_in_progress": self._cycle_lock.locked(),
            "cycle_count": self._cycle_count,
            "interval_seconds": self._settings.tracker.interval_seconds,
            "assets": list(self._settings.tracker.assets),
            "last_cycle": (
                {
                    "started_at_ms": report.started_at_ms,
                    "fetched": report.fetched,
                    "failed": report.failed,
                    "samples_written": report.samples_written,
                    "notifications_sent": report.notifications_sent,
                    "notifications_failed": report.notifications_failed,
                }
                if report is not None
                else None
            ),
        }
