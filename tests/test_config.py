"""Tests for settings loading and the analysis period table."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from screener.config import AppSettings, ConfirmationSettings, DetectorSettings, EngineSettings
from screener.periods import period_minutes, period_ms, period_seconds
from screener.signals.models import DetectorConfig


class TestSettings:
    def test_defaults(self) -> None:
        settings = AppSettings()
        assert settings.confirmation.signal_threshold == 3
        assert settings.confirmation.required_confirmations == 6
        assert settings.detector.min_confidence == Decimal("60")
        assert settings.metrics.ttl_seconds == 30.0
        assert settings.engine.periods == ["5m", "15m", "30m", "1h", "4h", "1d"]

    def test_env_prefix_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONFIRMATION_SIGNAL_THRESHOLD", "5")
        monkeypatch.setenv("DETECTOR_MIN_CHANGE_PERCENT", "1.5")

        assert ConfirmationSettings().signal_threshold == 5
        detector = DetectorSettings()
        assert detector.min_change_percent == Decimal("1.5")

    def test_env_list_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENGINE_PERIODS", '["15m", "1h"]')
        assert EngineSettings().periods == ["15m", "1h"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_confidence": Decimal("101")},
            {"min_change_percent": Decimal("-1")},
            {"continuity_threshold": Decimal("1.5")},
            {"volume_weight": Decimal("-0.1")},
        ],
    )
    def test_detector_bounds(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            DetectorSettings(**kwargs)

    def test_signal_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ConfirmationSettings(signal_threshold=0)

    def test_detector_config_from_settings(self) -> None:
        config = DetectorConfig.from_settings(
            DetectorSettings(min_confidence=Decimal("70"), interval_enabled=False)
        )
        assert config.min_confidence == Decimal("70")
        assert config.interval_enabled is False
        assert config.single_enabled is True


class TestPeriods:
    @pytest.mark.parametrize(
        "period,minutes",
        [("5m", 5), ("15m", 15), ("30m", 30), ("1h", 60), ("4h", 240), ("1d", 1440)],
    )
    def test_known_periods(self, period: str, minutes: int) -> None:
        assert period_minutes(period) == minutes
        assert period_seconds(period) == minutes * 60
        assert period_ms(period) == minutes * 60_000

    def test_unknown_period_falls_back_to_15m(self) -> None:
        assert period_minutes("2w") == 15
        assert period_ms("") == 15 * 60_000
