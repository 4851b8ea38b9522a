"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the base exception hierarchy for the maintenance
alerting engine.

- Provides clear exception hierarchy
- Enables specific error handling
- Carries context for debugging and scan summaries

============================================================
EXCEPTION HIERARCHY
============================================================
MaintenanceEngineException (base)
├── ConfigurationError
│   └── InvalidConfigError
├── DataError
│   ├── DataSourceError
│   └── DataValidationError
├── PersistenceError
└── StateTransitionError

Subsystem-specific errors (alert lifecycle, feature gating)
live in predictive_maintenance.types and derive from these.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, a scan or request cannot complete."""

    CRITICAL = "critical"
    """Engine cannot operate."""


# ============================================================
# BASE EXCEPTION
# ============================================================

def _clip(value: Any, limit: int = 100) -> Optional[str]:
    return None if value is None else str(value)[:limit]


class MaintenanceEngineException(Exception):
    """
    Base exception for all maintenance engine errors.

    All exceptions carry:
    - severity: for log routing
    - context: for debugging (extra keyword fields land here)
    - recoverable: whether the next scan cycle may succeed
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_recoverable: bool = True

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        cause: Optional[Exception] = None,
        **fields: Any,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        self.context = dict(context or {})
        self.context.update({k: v for k, v in fields.items() if v is not None})
        if cause is not None:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging and scan summaries."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_log_format(self) -> str:
        """Single log line: [SEVERITY] Type: message | k=v, ..."""
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        if self.context:
            line += " | " + ", ".join(f"{k}={v}" for k, v in self.context.items())
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(MaintenanceEngineException):
    """Engine configuration (YAML, environment, CLI) is unusable."""

    default_severity = Severity.HIGH
    default_recoverable = False

    def __init__(self, message: str, config_key: Optional[str] = None, actual_value: Any = None, **kwargs):
        super().__init__(message, config_key=config_key, actual_value=_clip(actual_value), **kwargs)


class InvalidConfigError(ConfigurationError):
    """A single setting failed validation."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(f"Invalid configuration for {key}: {reason}", config_key=key, actual_value=value, reason=reason)


# ============================================================
# DATA ERRORS
# ============================================================

class DataError(MaintenanceEngineException):
    """Base class for data-related errors."""


class DataSourceError(DataError):
    """A collaborator lookup (catalog, assets, inventory) failed."""

    def __init__(self, message: str, source: Optional[str] = None, entity_id: Optional[str] = None, **kwargs):
        super().__init__(message, source=source, entity_id=entity_id, **kwargs)


class DataValidationError(DataError):
    """Input data failed validation."""

    default_severity = Severity.LOW

    def __init__(self, message: str, field: Optional[str] = None, actual: Any = None, **kwargs):
        super().__init__(message, field=field, actual=_clip(actual), **kwargs)


# ============================================================
# SYSTEM ERRORS
# ============================================================

class PersistenceError(MaintenanceEngineException):
    """Database operation failed."""

    default_severity = Severity.HIGH

    def __init__(self, message: str, operation: Optional[str] = None, table: Optional[str] = None, **kwargs):
        super().__init__(message, operation=operation, table=table, **kwargs)


class StateTransitionError(MaintenanceEngineException):
    """Requested status change is not allowed from the current status."""

    default_recoverable = False

    def __init__(self, message: str, from_state: Optional[str] = None, to_state: Optional[str] = None, **kwargs):
        super().__init__(message, from_state=from_state, to_state=to_state, **kwargs)


__all__ = [
    "Severity",
    "MaintenanceEngineException",
    "ConfigurationError",
    "InvalidConfigError",
    "DataError",
    "DataSourceError",
    "DataValidationError",
    "PersistenceError",
    "StateTransitionError",
]
