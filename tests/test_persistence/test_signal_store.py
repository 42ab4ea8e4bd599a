"""Tests for SignalDatabase and SignalStore using a temporary SQLite file."""

from decimal import Decimal

import pytest

from conftest import BASE_TS, build_signal
from screener.exceptions import PublishError
from screener.models import Direction
from screener.persistence.database import SCHEMA_VERSION, SignalDatabase
from screener.persistence.signal_store import SignalStore


class TestSignalDatabase:
    @pytest.mark.asyncio
    async def test_connect_creates_schema(self, tmp_path) -> None:
        db_path = tmp_path / "nested" / "signals.db"

        async with SignalDatabase(str(db_path)) as database:
            assert database.is_connected
            cursor = await database.db.execute("SELECT version FROM schema_version")
            assert await cursor.fetchone() == (SCHEMA_VERSION,)

        assert db_path.exists()
        assert not database.is_connected

    def test_db_before_connect_raises(self, tmp_path) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            SignalDatabase(str(tmp_path / "signals.db")).db


class TestSignalStore:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_decimals(self, tmp_path) -> None:
        async with SignalDatabase(str(tmp_path / "signals.db")) as database:
            store = SignalStore(database)
            signal = build_signal()

            await store.publish(signal)
            stored = await store.get_recent_signals()

        assert len(stored) == 1
        restored = stored[0]
        assert restored.id == signal.id
        assert restored.direction is Direction.GROWTH
        assert restored.confidence == Decimal("72.5")
        assert restored.indicators["rsi"] == Decimal("61.25")
        assert isinstance(restored.indicators["volume_delta"], Decimal)
        assert restored.tags == signal.tags

    @pytest.mark.asyncio
    async def test_duplicate_id_ignored(self, tmp_path) -> None:
        async with SignalDatabase(str(tmp_path / "signals.db")) as database:
            store = SignalStore(database)
            signal = build_signal()

            await store.publish(signal)
            await store.publish(signal)

            assert await store.count_signals() == 1

    @pytest.mark.asyncio
    async def test_recent_newest_first_with_symbol_filter(self, tmp_path) -> None:
        async with SignalDatabase(str(tmp_path / "signals.db")) as database:
            store = SignalStore(database)
            await store.publish(build_signal(timestamp_ms=BASE_TS))
            await store.publish(build_signal(timestamp_ms=BASE_TS + 2000))
            await store.publish(
                build_signal(symbol="ETH/USDT:USDT", direction=Direction.FALL, timestamp_ms=BASE_TS + 1000)
            )

            everything = await store.get_recent_signals()
            btc = await store.get_recent_signals(symbol="BTC/USDT:USDT")
            latest = await store.get_recent_signals(limit=1)

        assert [s.timestamp_ms for s in everything] == [BASE_TS + 2000, BASE_TS + 1000, BASE_TS]
        assert len(btc) == 2
        assert latest[0].timestamp_ms == BASE_TS + 2000

    @pytest.mark.asyncio
    async def test_publish_without_connection_raises_publish_error(self, tmp_path) -> None:
        store = SignalStore(SignalDatabase(str(tmp_path / "signals.db")))

        with pytest.raises(PublishError):
            await store.publish(build_signal())
