"""
Tests for engine configuration and the read cache.

Tests cover:
- Defaults
- YAML loading, unknown keys, unreadable files
- Environment overrides
- Validation errors
- Cache TTL and per-company invalidation
"""

from datetime import timedelta

import pytest

from core.exceptions import ConfigurationError, InvalidConfigError
from predictive_maintenance import (
    EvaluationConfig,
    LifecycleConfig,
    MaintenanceEngineConfig,
    ReadCache,
    ScanConfig,
    StockConfig,
)


# =============================================================
# TEST: MaintenanceEngineConfig
# =============================================================

class TestDefaults:
    """Test default values."""

    def test_defaults(self):
        config = MaintenanceEngineConfig()

        assert config.stock.safety_stock_multiplier == 1.5
        assert config.stock.default_lead_time_days == 7
        assert config.projection.daily_usage_hours == 12.0
        assert config.evaluation.critical_days == 7
        assert config.evaluation.warning_days == 30
        assert config.lifecycle.min_dismiss_reason_length == 10
        assert config.lifecycle.stale_after_hours == 168.0
        assert config.cache.ttl_seconds == 30.0

    def test_to_dict_has_every_section(self):
        data = MaintenanceEngineConfig().to_dict()
        assert set(data) == {"stock", "projection", "evaluation", "lifecycle", "cache", "scan"}


class TestFromYaml:
    """Test YAML loading."""

    def test_sections_override_defaults(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "stock:\n"
            "  safety_stock_multiplier: 2.0\n"
            "lifecycle:\n"
            "  dismiss_cooldown_hours: 48\n"
            "scan:\n"
            "  max_concurrency: 4\n"
        )

        config = MaintenanceEngineConfig.from_yaml(path)

        assert config.stock.safety_stock_multiplier == 2.0
        assert config.lifecycle.dismiss_cooldown_hours == 48
        assert config.scan.max_concurrency == 4
        assert config.evaluation.warning_days == 30

    def test_unknown_keys_are_ignored(self, tmp_path, caplog):
        path = tmp_path / "engine.yaml"
        path.write_text("alerts:\n  foo: 1\nstock:\n  bogus: 3\n")

        config = MaintenanceEngineConfig.from_yaml(path)

        assert config.stock == StockConfig()
        assert "alerts" in caplog.text
        assert "stock.bogus" in caplog.text

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = MaintenanceEngineConfig.from_yaml(tmp_path / "absent.yaml")
        assert config.to_dict() == MaintenanceEngineConfig().to_dict()

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("evaluation:\n  critical_days: 40\n  warning_days: 30\n")

        with pytest.raises(InvalidConfigError):
            MaintenanceEngineConfig.from_yaml(path)

    def test_non_mapping_root_raises(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            MaintenanceEngineConfig.from_yaml(path)


class TestFromEnv:
    """Test environment overrides."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PM_CRITICAL_DAYS", "5")
        monkeypatch.setenv("PM_DAILY_USAGE_HOURS", "16")
        monkeypatch.setenv("PM_SCAN_MAX_CONCURRENCY", "3")

        config = MaintenanceEngineConfig.from_env()

        assert config.evaluation.critical_days == 5
        assert config.projection.daily_usage_hours == 16.0
        assert config.scan.max_concurrency == 3

    def test_bad_env_value_raises(self, monkeypatch):
        monkeypatch.setenv("PM_WARNING_DAYS", "a month")

        with pytest.raises(InvalidConfigError) as exc_info:
            MaintenanceEngineConfig.from_env()

        assert exc_info.value.context["config_key"] == "PM_WARNING_DAYS"


class TestValidation:
    """Test section validation."""

    def test_negative_multiplier(self):
        with pytest.raises(InvalidConfigError):
            StockConfig(safety_stock_multiplier=-1)

    def test_ratio_out_of_range(self):
        with pytest.raises(InvalidConfigError):
            EvaluationConfig(critical_stock_ratio=1.5)

    def test_non_positive_stale_window(self):
        with pytest.raises(InvalidConfigError):
            LifecycleConfig(stale_after_hours=0)

    def test_zero_concurrency(self):
        with pytest.raises(InvalidConfigError):
            ScanConfig(max_concurrency=0)


# =============================================================
# TEST: ReadCache
# =============================================================

class TestReadCache:
    """Test the TTL read cache."""

    def test_hit_within_ttl(self, clock):
        cache = ReadCache(30, clock=clock)
        cache.set("acme", "list_alerts", ("k",), [1, 2])

        clock.advance(seconds=29)

        assert cache.get("acme", "list_alerts", ("k",)) == [1, 2]

    def test_expires_after_ttl(self, clock):
        cache = ReadCache(30, clock=clock)
        cache.set("acme", "list_alerts", ("k",), [1, 2])

        clock.advance(timedelta(seconds=30).total_seconds())

        assert cache.get("acme", "list_alerts", ("k",)) is None
        assert len(cache) == 0

    def test_keys_are_per_company_and_params(self, clock):
        cache = ReadCache(30, clock=clock)
        cache.set("acme", "trends", 30, "acme-30")

        assert cache.get("globex", "trends", 30) is None
        assert cache.get("acme", "trends", 7) is None

    def test_invalidate_only_drops_one_company(self, clock):
        cache = ReadCache(30, clock=clock)
        cache.set("acme", "trends", 30, "a")
        cache.set("acme", "list_critical", 10, "b")
        cache.set("globex", "trends", 30, "c")

        assert cache.invalidate("acme") == 2
        assert cache.get("globex", "trends", 30) == "c"

    def test_disabled_cache_never_stores(self, clock):
        cache = ReadCache(30, clock=clock, enabled=False)
        cache.set("acme", "trends", 30, "a")

        assert cache.get("acme", "trends", 30) is None
        assert len(cache) == 0

    def test_zero_ttl_disables(self, clock):
        cache = ReadCache(0, clock=clock)
        cache.set("acme", "trends", 30, "a")
        assert cache.get("acme", "trends", 30) is None
