"""SQLite-backed event sink and query layer for published signals.

CRITICAL: All Decimal values stored as TEXT in SQLite, restored as Decimal on read.
"""

import json
from decimal import Decimal

from screener.exceptions import PublishError
from screener.logging import get_logger
from screener.models import Direction, Signal
from screener.persistence.database import SignalDatabase

logger = get_logger(__name__)


class SignalStore:
    """Persists every published signal; usable directly as an EventSink.

    Usage:
        async with SignalDatabase("data/signals.db") as database:
            store = SignalStore(database)
            await store.publish(signal)
    """

    def __init__(self, database: SignalDatabase) -> None:
        self._database = database

    async def publish(self, signal: Signal) -> None:
        """Insert a signal. Re-publishing the same id is ignored."""
        try:
            await self._database.db.execute(
                "INSERT OR IGNORE INTO signals "
                "(id, symbol, direction, period, change_percent, confidence, data_points, "
                "start_price, end_price, timestamp_ms, indicators, tags) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    signal.id,
                    signal.symbol,
                    signal.direction.value,
                    signal.period,
                    str(signal.change_percent),
                    str(signal.confidence),
                    signal.data_points,
                    str(signal.start_price),
                    str(signal.end_price),
                    signal.timestamp_ms,
                    json.dumps({k: str(v) for k, v in signal.indicators.items()}),
                    json.dumps(list(signal.tags)),
                ),
            )
            await self._database.db.commit()
        except Exception as e:
            raise PublishError(f"failed to store signal {signal.id}: {e}") from e

        logger.debug("signal_stored", signal_id=signal.id, symbol=signal.symbol)

    async def get_recent_signals(
        self, limit: int = 50, symbol: str | None = None
    ) -> list[Signal]:
        """Most recent signals first, optionally for one symbol."""
        query = (
            "SELECT id, symbol, direction, period, change_percent, confidence, data_points, "
            "start_price, end_price, timestamp_ms, indicators, tags FROM signals"
        )
        params: list = []
        if symbol is not None:
            query += " WHERE symbol = ?"
            params.append(symbol)
        query += " ORDER BY timestamp_ms DESC LIMIT ?"
        params.append(limit)

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [
            Signal(
                id=row[0],
                symbol=row[1],
                direction=Direction(row[2]),
                period=row[3],
                change_percent=Decimal(row[4]),
                confidence=Decimal(row[5]),
                data_points=row[6],
                start_price=Decimal(row[7]),
                end_price=Decimal(row[8]),
                timestamp_ms=row[9],
                indicators={k: Decimal(v) for k, v in json.loads(row[10]).items()},
                tags=tuple(json.loads(row[11])),
            )
            for row in rows
        ]

    async def count_signals(self) -> int:
        cursor = await self._database.db.execute("SELECT COUNT(*) FROM signals")
        row = await cursor.fetchone()
        return row[0] if row else 0
