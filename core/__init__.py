"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- clock: Injectable time abstraction
- exceptions: Custom exception hierarchy
"""

from .clock import ClockProtocol, SystemClock, MockClock, ensure_utc, whole_days_between
from .exceptions import (
    Severity,
    MaintenanceEngineException,
    ConfigurationError,
    InvalidConfigError,
    DataError,
    DataSourceError,
    DataValidationError,
    PersistenceError,
    StateTransitionError,
)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "whole_days_between",
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
