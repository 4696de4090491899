# utils/__init__.py
"""
Shared Utilities Package for Streamlit Apps

This package contains common utilities shared across all pages:
- auth: Authentication and session management
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management with pooling
- kpi_tracking: Weekly plan tracking, approval, export and AI review

Usage:
    # Import specific modules
    from utils.auth import AuthManager
    from utils.db import get_db_engine, execute_query
    from utils.config import config

    # Or import commonly used items directly
    from utils import AuthManager, get_db_engine, config
"""

# Authentication
from .auth import (
    AuthManager,
    hash_password,
    verify_password,
    require_login,
    require_roles,
)

# Configuration
from .config import (
    config,
    Config,
    ConfigurationError,
    IS_RUNNING_ON_CLOUD,
    APP_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    get_transaction,
    execute_query,
    execute_update,
    get_connection_pool_status,
)

__all__ = [
    # Auth
    'AuthManager',
    'hash_password',
    'verify_password',
    'require_login',
    'require_roles',

    # Config
    'config',
    'Config',
    'ConfigurationError',
    'IS_RUNNING_ON_CLOUD',
    'APP_CONFIG',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_transaction',
    'execute_query',
    'execute_update',
    'get_connection_pool_status',
]

__version__ = '1.0.0'
