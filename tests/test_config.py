"""Tests for settings defaults, env overrides and component wiring."""

from decimal import Decimal
from pathlib import Path

import pytest

from pricewatch.config import FEE_RATE, AppSettings, SwapSettings, TrackerSettings
from pricewatch.main import _build_components


class TestSettings:
    def test_tracker_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TRACKER_ASSETS", raising=False)
        settings = TrackerSettings()

        assert settings.assets == ["ETH", "POL"]
        assert settings.interval_seconds == 300
        assert settings.volatility_threshold_pct == Decimal("3")
        assert settings.volatility_window_seconds == 3600

    def test_swap_fee_rate_default(self) -> None:
        assert SwapSettings().fee_rate == FEE_RATE == Decimal("0.03")

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRACKER_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("TRACKER_ASSETS", '["BTC"]')

        settings = TrackerSettings()

        assert settings.interval_seconds == 60
        assert settings.assets == ["BTC"]


class TestEnvFile:
    EXAMPLE = Path(__file__).resolve().parents[1] / ".env.example"

    @pytest.fixture(autouse=True)
    def _clear_process_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for line in self.EXAMPLE.read_text().splitlines():
            if "=" in line:
                monkeypatch.delenv(line.split("=", 1)[0], raising=False)

    def test_example_env_file_loads(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".env").write_text(self.EXAMPLE.read_text())
        monkeypatch.chdir(tmp_path)

        settings = AppSettings()

        assert settings.log_format == "console"
        assert settings.source.exchange_id == "binance"
        assert settings.tracker.assets == ["ETH", "POL"]
        assert settings.tracker.volatility_recipient == "alerts@example.com"
        assert settings.swap.fee_rate == Decimal("0.03")
        assert settings.notifier.host == "smtp.example.com"
        assert settings.api.port == 3000

    def test_env_file_values_reach_each_group(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".env").write_text(
            "LOG_LEVEL=DEBUG\n"
            "LOG_FORMAT=json\n"
            "TRACKER_INTERVAL_SECONDS=60\n"
            "TRACKER_ASSETS=[\"BTC\"]\n"
            "SMTP_HOST=mail.internal\n"
            "STORAGE_DB_PATH=/var/lib/pricewatch.db\n"
            "UNRELATED_KEY=ignored\n"
        )
        monkeypatch.chdir(tmp_path)

        settings = AppSettings()

        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"
        assert settings.tracker.interval_seconds == 60
        assert settings.tracker.assets == ["BTC"]
        assert settings.notifier.host == "mail.internal"
        assert settings.storage.db_path == "/var/lib/pricewatch.db"


class TestBuildComponents:
    def test_wires_shared_store(self, settings: AppSettings) -> None:
        components = _build_components(settings)

        assert set(components) == {
            "database",
            "store",
            "price_source",
            "notifier",
            "evaluator",
            "scheduler",
            "query_service",
        }
        assert components["scheduler"]._store is components["store"]
        assert components["query_service"]._store is components["store"]
        assert not components["scheduler"].is_running
