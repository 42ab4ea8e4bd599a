"""Signal detection and confirmation.

Provides the change detector (single-step, interval and continuous
algorithms), confidence scoring, confirmation counters, technical
indicators, and the SignalEngine that turns price series into
confirmed, enriched signals.
"""

from screener.signals.confirmation import ConfirmationManager
from screener.signals.detector import ChangeDetector
from screener.signals.engine import SignalEngine
from screener.signals.indicators import MACD, compute_ema, compute_macd, compute_rsi
from screener.signals.models import AlgorithmType, ChangeResult, DetectorConfig

__all__ = [
    "MACD",
    "AlgorithmType",
    "ChangeDetector",
    "ChangeResult",
    "ConfirmationManager",
    "DetectorConfig",
    "SignalEngine",
    "compute_ema",
    "compute_macd",
    "compute_rsi",
]
