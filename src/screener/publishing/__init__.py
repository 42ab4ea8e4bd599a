"""Signal publishing -- bounded outbound queue and event sinks."""

from screener.publishing.publisher import EventSink, SignalPublisher
from screener.publishing.sinks import LogSink

__all__ = ["EventSink", "LogSink", "SignalPublisher"]
