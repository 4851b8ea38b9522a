"""
Predictive Maintenance - Configuration.

============================================================
CONFIGURABLE ENGINE PARAMETERS
============================================================

Every tunable of the alerting engine lives here:
- Stock sizing constants
- Projection heuristic
- Severity thresholds
- Lifecycle windows (staleness, dismissal cool-down)
- Read cache window
- Scan concurrency

Configuration can be loaded from:
- Default values
- Environment variables (.env supported)
- YAML config file

============================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import yaml
from dotenv import load_dotenv

from core.exceptions import InvalidConfigError


logger = logging.getLogger(__name__)


# =============================================================
# STOCK SIZING
# =============================================================


@dataclass
class StockConfig:
    """
    Constants for the minimum stock formula.

    hours_per_month is the 30-day operating month used to turn
    MTBF into a monthly failure rate.
    """
    safety_stock_multiplier: float = 1.5
    hours_per_month: float = 720.0
    days_per_month: int = 30
    default_lead_time_days: int = 7

    def __post_init__(self) -> None:
        if self.safety_stock_multiplier < 0:
            raise InvalidConfigError("stock.safety_stock_multiplier", self.safety_stock_multiplier, "must be >= 0")
        if self.hours_per_month <= 0:
            raise InvalidConfigError("stock.hours_per_month", self.hours_per_month, "must be > 0")
        if self.days_per_month <= 0:
            raise InvalidConfigError("stock.days_per_month", self.days_per_month, "must be > 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safety_stock_multiplier": self.safety_stock_multiplier,
            "hours_per_month": self.hours_per_month,
            "days_per_month": self.days_per_month,
            "default_lead_time_days": self.default_lead_time_days,
        }


# =============================================================
# PROJECTION
# =============================================================


@dataclass
class ProjectionConfig:
    """
    Usage heuristic for assets without a recorded hour counter.

    12 hours/day is a fixed platform assumption, there is no
    per-asset usage profile.
    """
    daily_usage_hours: float = 12.0

    def __post_init__(self) -> None:
        if self.daily_usage_hours <= 0:
            raise InvalidConfigError("projection.daily_usage_hours", self.daily_usage_hours, "must be > 0")

    def to_dict(self) -> Dict[str, Any]:
        return {"daily_usage_hours": self.daily_usage_hours}


# =============================================================
# SEVERITY THRESHOLDS
# =============================================================


@dataclass
class EvaluationConfig:
    """
    Thresholds used by the alert evaluator.

    - CRITICAL: days <= critical_days (A/B only)
    - WARNING:  days <= warning_days
    - stock CRITICAL: current < minimum * critical_stock_ratio
    """
    critical_days: int = 7
    warning_days: int = 30
    critical_stock_ratio: float = 0.25

    def __post_init__(self) -> None:
        if self.critical_days > self.warning_days:
            raise InvalidConfigError("evaluation.critical_days", self.critical_days, "must be <= warning_days")
        if not 0 < self.critical_stock_ratio < 1:
            raise InvalidConfigError("evaluation.critical_stock_ratio", self.critical_stock_ratio, "must be in (0, 1)")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical_days": self.critical_days,
            "warning_days": self.warning_days,
            "critical_stock_ratio": self.critical_stock_ratio,
        }


# =============================================================
# LIFECYCLE
# =============================================================


@dataclass
class LifecycleConfig:
    """Alert lifecycle windows."""
    # ACTIVE alerts not re-evaluated within this window are auto-closed
    stale_after_hours: float = 168.0  # 7 days

    # A dismissed condition is not re-raised within this window
    # unless its severity escalates
    dismiss_cooldown_hours: float = 24.0

    min_dismiss_reason_length: int = 10

    def __post_init__(self) -> None:
        if self.stale_after_hours <= 0:
            raise InvalidConfigError("lifecycle.stale_after_hours", self.stale_after_hours, "must be > 0")
        if self.dismiss_cooldown_hours < 0:
            raise InvalidConfigError("lifecycle.dismiss_cooldown_hours", self.dismiss_cooldown_hours, "must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stale_after_hours": self.stale_after_hours,
            "dismiss_cooldown_hours": self.dismiss_cooldown_hours,
            "min_dismiss_reason_length": self.min_dismiss_reason_length,
        }


# =============================================================
# READ CACHE / SCANNING
# =============================================================


@dataclass
class CacheConfig:
    """Read-path cache window."""
    ttl_seconds: float = 30.0
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"ttl_seconds": self.ttl_seconds, "enabled": self.enabled}


@dataclass
class ScanConfig:
    """Scan pass settings."""
    max_concurrency: int = 10
    interval_seconds: int = 3600
    feature_key: str = "PREDICTIVE_MAINTENANCE"
    retry_on_duplicate: bool = True

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise InvalidConfigError("scan.max_concurrency", self.max_concurrency, "must be >= 1")
        if self.interval_seconds < 1:
            raise InvalidConfigError("scan.interval_seconds", self.interval_seconds, "must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_concurrency": self.max_concurrency,
            "interval_seconds": self.interval_seconds,
            "feature_key": self.feature_key,
            "retry_on_duplicate": self.retry_on_duplicate,
        }


# =============================================================
# MAIN CONFIGURATION
# =============================================================


_SECTIONS = {
    "stock": StockConfig,
    "projection": ProjectionConfig,
    "evaluation": EvaluationConfig,
    "lifecycle": LifecycleConfig,
    "cache": CacheConfig,
    "scan": ScanConfig,
}

# env var -> (section, field, type)
_ENV_OVERRIDES = {
    "PM_SAFETY_STOCK_MULTIPLIER": ("stock", "safety_stock_multiplier", float),
    "PM_DEFAULT_LEAD_TIME_DAYS": ("stock", "default_lead_time_days", int),
    "PM_DAILY_USAGE_HOURS": ("projection", "daily_usage_hours", float),
    "PM_CRITICAL_DAYS": ("evaluation", "critical_days", int),
    "PM_WARNING_DAYS": ("evaluation", "warning_days", int),
    "PM_STALE_AFTER_HOURS": ("lifecycle", "stale_after_hours", float),
    "PM_DISMISS_COOLDOWN_HOURS": ("lifecycle", "dismiss_cooldown_hours", float),
    "PM_CACHE_TTL_SECONDS": ("cache", "ttl_seconds", float),
    "PM_SCAN_MAX_CONCURRENCY": ("scan", "max_concurrency", int),
    "PM_SCAN_INTERVAL_SECONDS": ("scan", "interval_seconds", int),
}


@dataclass
class MaintenanceEngineConfig:
    """
    Main configuration for the alerting engine.

    Combines all sub-configurations.
    """
    stock: StockConfig = field(default_factory=StockConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)

    @classmethod
    def from_env(cls) -> "MaintenanceEngineConfig":
        """
        Load configuration from environment variables.

        Environment variables (all optional):
        - PM_SAFETY_STOCK_MULTIPLIER
        - PM_DEFAULT_LEAD_TIME_DAYS
        - PM_DAILY_USAGE_HOURS
        - PM_CRITICAL_DAYS / PM_WARNING_DAYS
        - PM_STALE_AFTER_HOURS
        - PM_DISMISS_COOLDOWN_HOURS
        - PM_CACHE_TTL_SECONDS
        - PM_SCAN_MAX_CONCURRENCY / PM_SCAN_INTERVAL_SECONDS
        """
        load_dotenv()

        sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTIONS}
        for env_key, (section, name, cast) in _ENV_OVERRIDES.items():
            raw = os.getenv(env_key)
            if raw is None or raw == "":
                continue
            try:
                sections[section][name] = cast(raw)
            except ValueError as e:
                raise InvalidConfigError(env_key, raw, f"expected {cast.__name__}") from e

        return cls._from_sections(sections)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MaintenanceEngineConfig":
        """
        Load configuration from a YAML file.

        Unknown sections and keys are ignored with a warning.
        A missing or unreadable file falls back to defaults.
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            raise InvalidConfigError("root", type(data).__name__, "YAML root must be a mapping")

        sections: Dict[str, Dict[str, Any]] = {}
        for name, values in data.items():
            if name not in _SECTIONS:
                logger.warning(f"Ignoring unknown config section: {name}")
                continue
            if not isinstance(values, dict):
                raise InvalidConfigError(name, values, "section must be a mapping")
            sections[name] = values

        return cls._from_sections(sections)

    @classmethod
    def _from_sections(cls, sections: Dict[str, Dict[str, Any]]) -> "MaintenanceEngineConfig":
        kwargs = {}
        for name, section_cls in _SECTIONS.items():
            values = dict(sections.get(name) or {})
            known = section_cls.__dataclass_fields__.keys()
            for key in list(values):
                if key not in known:
                    logger.warning(f"Ignoring unknown config key: {name}.{key}")
                    values.pop(key)
            kwargs[name] = section_cls(**values)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stock": self.stock.to_dict(),
            "projection": self.projection.to_dict(),
            "evaluation": self.evaluation.to_dict(),
            "lifecycle": self.lifecycle.to_dict(),
            "cache": self.cache.to_dict(),
            "scan": self.scan.to_dict(),
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[MaintenanceEngineConfig] = None


def get_default_config() -> MaintenanceEngineConfig:
    """Get the process-wide engine configuration."""
    global _default_config
    if _default_config is None:
        _default_config = MaintenanceEngineConfig.from_env()
    return _default_config


def set_default_config(config: MaintenanceEngineConfig) -> None:
    """Replace the process-wide engine configuration."""
    global _default_config
    _default_config = config
