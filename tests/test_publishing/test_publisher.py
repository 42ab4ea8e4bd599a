"""Tests for SignalPublisher and the built-in sinks."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import build_signal
from screener.exceptions import PublishError
from screener.publishing.publisher import SignalPublisher
from screener.publishing.sinks import LogSink


def _sink(side_effect=None) -> MagicMock:
    sink = MagicMock()
    sink.publish = AsyncMock(side_effect=side_effect)
    return sink


class TestSubmit:
    def test_full_queue_drops_new_signal(self) -> None:
        publisher = SignalPublisher([_sink()], max_queue_size=2)
        first, second, third = build_signal(), build_signal(), build_signal()

        assert publisher.submit(first) is True
        assert publisher.submit(second) is True
        assert publisher.submit(third) is False

        stats = publisher.stats()
        assert stats["submitted"] == 2
        assert stats["dropped"] == 1
        assert stats["queued"] == 2


class TestDelivery:
    @pytest.mark.asyncio
    async def test_every_sink_receives_each_signal_once(self) -> None:
        sinks = [_sink(), _sink()]
        publisher = SignalPublisher(sinks)
        signal = build_signal()

        await publisher.start()
        publisher.submit(signal)
        await publisher.stop()

        for sink in sinks:
            sink.publish.assert_awaited_once_with(signal)
        assert publisher.stats()["delivered"] == 1
        assert not publisher.is_running

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_block_others(self) -> None:
        broken = _sink(side_effect=PublishError("disk full"))
        healthy = _sink()
        publisher = SignalPublisher([broken, healthy])

        await publisher.start()
        publisher.submit(build_signal())
        publisher.submit(build_signal(symbol="ETH/USDT:USDT"))
        await publisher.stop()

        assert broken.publish.await_count == 2
        assert healthy.publish.await_count == 2
        stats = publisher.stats()
        assert stats["sink_failures"] == 2
        assert stats["delivered"] == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_not_retried(self) -> None:
        broken = _sink(side_effect=RuntimeError("boom"))
        publisher = SignalPublisher([broken])

        await publisher.start()
        publisher.submit(build_signal())
        await publisher.stop()
        await asyncio.sleep(0)

        broken.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_drains_signals_queued_before_start(self) -> None:
        sink = _sink()
        publisher = SignalPublisher([sink])
        publisher.submit(build_signal())
        publisher.submit(build_signal())

        await publisher.start()
        await publisher.stop()

        assert sink.publish.await_count == 2
        assert publisher.stats()["queued"] == 0

    @pytest.mark.asyncio
    async def test_add_sink(self) -> None:
        publisher = SignalPublisher([])
        sink = _sink()
        publisher.add_sink(sink)

        await publisher.start()
        publisher.submit(build_signal())
        await publisher.stop()

        sink.publish.assert_awaited_once()


class TestLogSink:
    @pytest.mark.asyncio
    async def test_publish_does_not_raise(self) -> None:
        await LogSink().publish(build_signal())
