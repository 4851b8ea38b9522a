"""
Database Package Initialization.

============================================================
ASYNC DATABASE PERSISTENCE LAYER
============================================================

Engine, sessions and the shared platform tables read by the
maintenance alerting engine. Alert tables themselves live in
predictive_maintenance.models.

============================================================
"""

# Core engine and session management
from .engine import (
    # Declarative base
    Base,

    # Engine creation
    DEFAULT_DATABASE_URL,
    get_database_url,
    create_database_engine,
    create_session_factory,
    get_engine,
    get_session_factory,

    # Session management
    transaction_scope,

    # Database initialization
    verify_database_connection,
    create_all_tables,
    initialize_database,
    dispose_engine,
)

# Collaborator tables
from .models import (
    Component,
    Asset,
    ComponentAssetLink,
    InventoryItem,
    StockLocation,
    TenantFeature,
)


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "transaction_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
    "dispose_engine",
    "Component",
    "Asset",
    "ComponentAssetLink",
    "InventoryItem",
    "StockLocation",
    "TenantFeature",
]
