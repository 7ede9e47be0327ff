"""Typed SQLite read/write abstraction for price samples and alert rules.

All SQL is isolated behind PriceStore. Prices are stored as TEXT and
restored as Decimal on read; comparisons against prices therefore happen
in Python, not in SQL, so they stay exact.

Every aiosqlite failure surfaces as PersistenceError.
"""

from decimal import Decimal

import aiosqlite

from pricewatch.data.database import PriceDatabase
from pricewatch.exceptions import PersistenceError
from pricewatch.logging import get_logger
from pricewatch.models import AlertRule, PriceSample

logger = get_logger(__name__)

_SAMPLE_COLUMNS = (
    "asset_symbol, name, usd_price, pct_change_24h, usd_change_24h, "
    "usd_value_change_24h, timestamp_ms"
)


def _row_to_sample(row: tuple) -> PriceSample:
    return PriceSample(
        asset_symbol=row[0],
        name=row[1],
        usd_price=Decimal(row[2]),
        pct_change_24h=Decimal(row[3]),
        usd_change_24h=Decimal(row[4]),
        usd_value_change_24h=Decimal(row[5]),
        timestamp_ms=row[6],
    )


class PriceStore:
    """Async SQLite store for price samples and alert rules.

    Samples are append-only. Reads order by (timestamp_ms, id) so rows
    written with the same timestamp come back in insertion order.

    Usage:
        async with PriceDatabase("data/prices.db") as database:
            store = PriceStore(database)
            await store.insert_samples(samples)
    """

    def __init__(self, database: PriceDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def insert_samples(self, samples: list[PriceSample]) -> int:
        """Insert a batch of samples in a single transaction.

        All-or-nothing: on failure the transaction is rolled back and
        PersistenceError is raised. Returns the number of rows written.
        """
        if not samples:
            return 0

        data = [
            (
                s.asset_symbol,
                s.name,
                str(s.usd_price),
                str(s.pct_change_24h),
                str(s.usd_change_24h),
                str(s.usd_value_change_24h),
                s.timestamp_ms,
            )
            for s in samples
        ]

        db = self._database.db
        try:
            await db.executemany(
                f"INSERT INTO price_samples ({_SAMPLE_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                data,
            )
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise PersistenceError(f"Failed to write {len(samples)} samples: {e}") from e

        logger.debug("inserted_price_samples", count=len(samples))
        return len(samples)

    async def insert_rule(self, rule: AlertRule) -> AlertRule:
        """Persist an alert rule and return it with its assigned id."""
        db = self._database.db
        try:
            cursor = await db.execute(
                "INSERT INTO alert_rules "
                "(asset_symbol, target_price, recipient_email, created_at_ms) "
                "VALUES (?, ?, ?, ?)",
                (
                    rule.asset_symbol,
                    str(rule.target_price),
                    rule.recipient_email,
                    rule.created_at_ms,
                ),
            )
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise PersistenceError(f"Failed to create alert rule: {e}") from e

        logger.debug(
            "inserted_alert_rule",
            rule_id=cursor.lastrowid,
            asset_symbol=rule.asset_symbol,
        )
        return AlertRule(
            asset_symbol=rule.asset_symbol,
            target_price=rule.target_price,
            recipient_email=rule.recipient_email,
            created_at_ms=rule.created_at_ms,
            id=cursor.lastrowid,
        )

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get_latest_sample_before(
        self, asset_symbol: str, cutoff_ms: int
    ) -> PriceSample | None:
        """Most recent sample for asset_symbol with timestamp_ms <= cutoff_ms, or None."""
        try:
            cursor = await self._database.db.execute(
                f"SELECT {_SAMPLE_COLUMNS} FROM price_samples "
                "WHERE asset_symbol = ? AND timestamp_ms <= ? "
                "ORDER BY timestamp_ms DESC, id DESC LIMIT 1",
                (asset_symbol, cutoff_ms),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read reference sample: {e}") from e
        return _row_to_sample(row) if row is not None else None

    async def get_samples(
        self,
        asset_symbol: str,
        since_ms: int | None = None,
        until_ms: int | None = None,
    ) -> list[PriceSample]:
        """Query samples for an asset within an optional inclusive time range.

        Returns list of PriceSample ordered by timestamp_ms ASC.
        """
        conditions = ["asset_symbol = ?"]
        params: list = [asset_symbol]

        if since_ms is not None:
            conditions.append("timestamp_ms >= ?")
            params.append(since_ms)
        if until_ms is not None:
            conditions.append("timestamp_ms <= ?")
            params.append(until_ms)

        where = " AND ".join(conditions)
        try:
            cursor = await self._database.db.execute(
                f"SELECT {_SAMPLE_COLUMNS} FROM price_samples "
                f"WHERE {where} ORDER BY timestamp_ms ASC, id ASC",
                params,
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read samples: {e}") from e
        return [_row_to_sample(row) for row in rows]

    async def get_rules_below(
        self, asset_symbol: str, price: Decimal
    ) -> list[AlertRule]:
        """Rules for asset_symbol whose target_price is strictly below price."""
        try:
            cursor = await self._database.db.execute(
                "SELECT id, asset_symbol, target_price, recipient_email, created_at_ms "
                "FROM alert_rules WHERE asset_symbol = ? ORDER BY id ASC",
                (asset_symbol,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to read alert rules: {e}") from e

        rules = [
            AlertRule(
                id=row[0],
                asset_symbol=row[1],
                target_price=Decimal(row[2]),
                recipient_email=row[3],
                created_at_ms=row[4],
            )
            for row in rows
        ]
        return [r for r in rules if r.target_price < price]
