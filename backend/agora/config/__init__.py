"""
Configuration module initialization.
Exports configuration components for use throughout the application.
"""

from agora.config.settings import (
    LedgerConfig,
    OracleConfig,
    SettlementConfig,
    Settings,
    get_settings,
)

__all__ = [
    "LedgerConfig",
    "OracleConfig",
    "SettlementConfig",
    "Settings",
    "get_settings",
]
