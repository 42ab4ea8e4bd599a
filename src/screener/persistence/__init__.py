"""Signal persistence -- aiosqlite database and signal store."""

from screener.persistence.database import SignalDatabase
from screener.persistence.signal_store import SignalStore

__all__ = ["SignalDatabase", "SignalStore"]
