"""
Database module initialization.
Exports database components for use throughout the application.
"""

from agora.database.base import Base
from agora.database.connection import (
    check_db_connection,
    close_db,
    get_db_info,
    init_db,
)
from agora.database.dependencies import get_db
from agora.database.session import (
    build_engine,
    build_session_factory,
    configure_engine,
    get_db_session,
)

__all__ = [
    # Base class
    "Base",
    # Connection management
    "init_db",
    "close_db",
    "build_engine",
    "build_session_factory",
    "configure_engine",
    # Dependencies
    "get_db",
    "get_db_session",
    # Utilities
    "check_db_connection",
    "get_db_info",
]
