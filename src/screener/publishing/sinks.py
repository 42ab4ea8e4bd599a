"""Built-in event sinks."""

from screener.logging import get_logger
from screener.models import Signal

logger = get_logger(__name__)


class LogSink:
    """Writes one structured INFO line per published signal."""

    async def publish(self, signal: Signal) -> None:
        logger.info(
            "signal_published",
            signal_id=signal.id,
            symbol=signal.symbol,
            direction=signal.direction.value,
            period=signal.period,
            change_percent=str(signal.change_percent),
            confidence=str(signal.confidence),
            tags=list(signal.tags),
        )
