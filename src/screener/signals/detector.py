"""Multi-algorithm price change detection.

Three algorithms scan the same read-only series independently and their
results are concatenated, so one scan may yield several results:

1. Single-step: each adjacent pair of points (instant spikes).
2. Interval: the tightest window explaining a move. A window is dropped
   when an inner sub-window already reproduces >= 90% of its move, or when
   a larger window of the same direction that itself meets the confidence
   threshold encloses it.
3. Continuous: the longest run (>= 3 points) whose steps mostly move in
   one direction; the scan resumes after each accepted run.

Series with fewer than two points produce no results. Comparisons against
a zero or negative base price are skipped.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from screener.logging import get_logger
from screener.models import Direction, PricePoint
from screener.signals import scoring
from screener.signals.models import AlgorithmType, ChangeResult, DetectorConfig
from screener.signals.statistics import (
    average_volume,
    continuity_ratio,
    count_directional_steps,
    duration_minutes,
    is_continuous,
    percent_change,
    trend_strength,
    volatility,
)

logger = get_logger(__name__)

#: An inner window reproducing this share of a move makes the outer window redundant.
_REDUNDANCY_RATIO = Decimal("0.9")

_MIN_WINDOW_POINTS = 3


class ChangeDetector:
    """Finds qualifying price moves in a single symbol's series."""

    def detect(
        self, series: Sequence[PricePoint], config: DetectorConfig
    ) -> list[ChangeResult]:
        """Run every enabled algorithm over ``series`` and concatenate the results.

        Args:
            series: Points for one symbol, sorted ascending by timestamp.
            config: Detection thresholds.

        Returns:
            Results in algorithm order (single, interval, continuous).
        """
        if len(series) < 2:
            logger.debug("insufficient_points_for_detection", points=len(series))
            return []

        results: list[ChangeResult] = []
        if config.single_enabled:
            results.extend(self.detect_single(series, config))
        if len(series) >= _MIN_WINDOW_POINTS:
            if config.interval_enabled:
                results.extend(self.detect_interval(series, config))
            if config.continuous_enabled:
                results.extend(self.detect_continuous(series, config))
        return results

    # ──────────────────────────────────────────────
    # Algorithms
    # ──────────────────────────────────────────────

    def detect_single(
        self, series: Sequence[PricePoint], config: DetectorConfig
    ) -> list[ChangeResult]:
        results: list[ChangeResult] = []

        for i in range(1, len(series)):
            change = percent_change(series[i - 1].price, series[i].price)
            if change is None or change == 0 or abs(change) < config.min_change_percent:
                continue

            window = series[i - 1 : i + 1]
            minutes = duration_minutes(window)
            volume = average_volume(window)
            vol = volatility(window)
            confidence = scoring.score_single(
                scoring.ScoreInputs(
                    change_percent=change,
                    duration_minutes=minutes,
                    data_points=2,
                    avg_volume=volume,
                    volatility=vol,
                    volume_weight=config.volume_weight,
                )
            )
            if confidence < config.min_confidence:
                continue

            results.append(
                ChangeResult(
                    symbol=series[0].symbol,
                    algorithm=AlgorithmType.SINGLE,
                    direction=Direction.from_change(change),
                    change_percent=change,
                    confidence=confidence,
                    period_minutes=minutes,
                    data_points=2,
                    start_price=window[0].price,
                    end_price=window[-1].price,
                    avg_volume=volume,
                    is_continuous=False,
                    start_index=i - 1,
                    end_index=i,
                    indicators={
                        "price_change": change,
                        "change_value": abs(change),
                        "duration_minutes": minutes,
                        "volume_avg": volume,
                        "trend_strength": trend_strength(window),
                        "volatility": vol,
                    },
                )
            )

        return results

    def detect_interval(
        self, series: Sequence[PricePoint], config: DetectorConfig
    ) -> list[ChangeResult]:
        candidates: dict[tuple[int, int], Decimal] = {}

        for i in range(len(series)):
            for j in range(i + 1, len(series)):
                change = percent_change(series[i].price, series[j].price)
                if change is None or change == 0 or abs(change) < config.min_change_percent:
                    continue
                if self._has_redundant_inner(series, i, j, change):
                    continue
                candidates[(i, j)] = change

        scored: list[ChangeResult] = []
        for (i, j), change in candidates.items():
            window = series[i : j + 1]
            direction = Direction.from_change(change)
            minutes = duration_minutes(window)
            volume = average_volume(window)
            ratio = continuity_ratio(window, direction)
            strength = trend_strength(window)
            continuous = is_continuous(window, direction, config.continuity_threshold)
            confidence = scoring.score_interval(
                scoring.ScoreInputs(
                    change_percent=change,
                    duration_minutes=minutes,
                    data_points=len(window),
                    avg_volume=volume,
                    trend_strength=strength,
                    continuity_ratio=ratio,
                    is_continuous=continuous,
                    volume_weight=config.volume_weight,
                )
            )
            if confidence < config.min_confidence:
                continue

            scored.append(
                ChangeResult(
                    symbol=series[0].symbol,
                    algorithm=AlgorithmType.INTERVAL,
                    direction=direction,
                    change_percent=change,
                    confidence=confidence,
                    period_minutes=minutes,
                    data_points=len(window),
                    start_price=window[0].price,
                    end_price=window[-1].price,
                    avg_volume=volume,
                    is_continuous=continuous,
                    start_index=i,
                    end_index=j,
                    indicators={
                        "price_change": change,
                        "change_value": abs(change),
                        "duration_minutes": minutes,
                        "data_points": Decimal(len(window)),
                        "volume_avg": volume,
                        "trend_strength": strength,
                        "volatility": volatility(window),
                        "continuity_ratio": ratio,
                        "is_continuous": Decimal(1 if continuous else 0),
                    },
                )
            )

        # Only windows that qualified on their own may suppress an inner window
        qualified = {(r.start_index, r.end_index): r.change_percent for r in scored}
        return [
            r for r in scored
            if not self._is_enclosed(r.start_index, r.end_index, r.change_percent, qualified)
        ]

    def detect_continuous(
        self, series: Sequence[PricePoint], config: DetectorConfig
    ) -> list[ChangeResult]:
        results: list[ChangeResult] = []
        n = len(series)

        i = 0
        while i <= n - _MIN_WINDOW_POINTS:
            found: ChangeResult | None = None
            # Longest qualifying run starting at i wins
            for j in range(n - 1, i + _MIN_WINDOW_POINTS - 2, -1):
                found = self._continuous_run(series, i, j, config)
                if found is not None:
                    break

            if found is None:
                i += 1
                continue

            results.append(found)
            i = found.end_index + 1

        return results

    # ──────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────

    def _continuous_run(
        self,
        series: Sequence[PricePoint],
        i: int,
        j: int,
        config: DetectorConfig,
    ) -> ChangeResult | None:
        segment = series[i : j + 1]
        change = percent_change(segment[0].price, segment[-1].price)
        if change is None or change == 0:
            return None

        direction = Direction.from_change(change)
        if not is_continuous(segment, direction, config.continuity_threshold):
            return None
        if abs(change) < config.min_change_percent:
            return None

        minutes = duration_minutes(segment)
        volume = average_volume(segment)
        ratio = continuity_ratio(segment, direction)
        steps = count_directional_steps(segment, direction)
        strength = trend_strength(segment)
        confidence = scoring.score_continuous(
            scoring.ScoreInputs(
                change_percent=change,
                duration_minutes=minutes,
                data_points=len(segment),
                avg_volume=volume,
                trend_strength=strength,
                continuity_ratio=ratio,
                is_continuous=True,
                continuous_steps=steps,
                volume_weight=config.volume_weight,
            )
        )
        if confidence < config.min_confidence:
            return None

        return ChangeResult(
            symbol=series[0].symbol,
            algorithm=AlgorithmType.CONTINUOUS,
            direction=direction,
            change_percent=change,
            confidence=confidence,
            period_minutes=minutes,
            data_points=len(segment),
            start_price=segment[0].price,
            end_price=segment[-1].price,
            avg_volume=volume,
            is_continuous=True,
            start_index=i,
            end_index=j,
            indicators={
                "price_change": change,
                "change_value": abs(change),
                "duration_minutes": minutes,
                "data_points": Decimal(len(segment)),
                "continuous_points": Decimal(steps),
                "volume_avg": volume,
                "trend_strength": strength,
                "volatility": volatility(segment),
                "continuity_ratio": ratio,
            },
        )

    @staticmethod
    def _has_redundant_inner(
        series: Sequence[PricePoint], i: int, j: int, change: Decimal
    ) -> bool:
        """True if (i, k) or (k, j) reproduces >= 90% of the (i, j) move."""
        threshold = abs(change) * _REDUNDANCY_RATIO
        for k in range(i + 1, j):
            for sub in (
                percent_change(series[i].price, series[k].price),
                percent_change(series[k].price, series[j].price),
            ):
                if sub is None or sub * change <= 0:
                    continue
                if abs(sub) >= threshold:
                    return True
        return False

    @staticmethod
    def _is_enclosed(
        i: int, j: int, change: Decimal, qualified: dict[tuple[int, int], Decimal]
    ) -> bool:
        """True if a larger same-direction qualified window contains (i, j)."""
        for (a, b), other in qualified.items():
            if (a, b) == (i, j) or a > i or b < j:
                continue
            if other * change > 0 and abs(other) > abs(change):
                return True
        return False
