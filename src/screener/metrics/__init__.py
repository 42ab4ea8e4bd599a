"""Derived market metrics -- volume delta and open interest change with tiered fallback."""

from screener.metrics.cache import MetricCache
from screener.metrics.estimators import (
    HistoryOIChangeEstimator,
    HistoryVolumeDeltaEstimator,
    MetricEstimator,
    SyntheticOIChangeEstimator,
    SyntheticVolumeDeltaEstimator,
    TradesVolumeDeltaSource,
)
from screener.metrics.models import MetricCacheEntry, MetricReading, MetricSource, MetricValue

__all__ = [
    "HistoryOIChangeEstimator",
    "HistoryVolumeDeltaEstimator",
    "MetricCache",
    "MetricCacheEntry",
    "MetricEstimator",
    "MetricReading",
    "MetricSource",
    "MetricValue",
    "SyntheticOIChangeEstimator",
    "SyntheticVolumeDeltaEstimator",
    "TradesVolumeDeltaSource",
]
