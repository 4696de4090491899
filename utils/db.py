# utils/db.py
"""
Database Connection Management

Version: 2.0.0
Features:
- Singleton pattern with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check utilities
- Query execution helpers

The hosted record store is Supabase Postgres, reached through its
direct connection string (postgresql+psycopg2).
"""

from sqlalchemy import create_engine, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError
from urllib.parse import quote_plus
import logging
import threading
from typing import Tuple, Optional, Dict, Any, List
from contextlib import contextmanager

from .config import config, ConfigurationError

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine():
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.
    Reuses the same engine across all calls to prevent
    connection pool exhaustion.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def build_db_url(db_config: Dict[str, Any]) -> str:
    """Build the SQLAlchemy URL from a database config dict"""
    user = db_config["user"]
    password = quote_plus(str(db_config["password"]))
    host = db_config["host"]
    port = db_config["port"]
    database = db_config["database"]
    driver = db_config.get("driver") or "postgresql+psycopg2"

    url = f"{driver}://{user}:{password}@{host}:{port}/{database}"
    if db_config.get("sslmode") and driver.startswith("postgresql"):
        url += f"?sslmode={db_config['sslmode']}"
    return url


def _create_engine():
    """Create new database engine with configured settings"""
    db_config = config.get_db_config()
    app_config = config.app_config

    url = build_db_url(db_config)

    logger.info(
        f"🔌 Creating database engine: {db_config['driver']}://{db_config['user']}:***@"
        f"{db_config['host']}:{db_config['port']}/{db_config['database']}"
    )

    # Pool settings
    pool_size = app_config.get("DB_POOL_SIZE", 5)
    pool_recycle = app_config.get("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection() -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except ConfigurationError as e:
        logger.error(f"❌ Database not configured: {e}")
        return False, str(e)
    except OperationalError as e:
        error_msg = "Không thể kết nối đến máy chủ dữ liệu. Vui lòng kiểm tra kết nối mạng."
        logger.error(f"❌ Database connection failed: {e}")
        return False, error_msg
    except Exception as e:
        error_msg = f"Database error: {str(e)}"
        logger.error(f"❌ Database error: {e}")
        return False, error_msg


def reset_db_engine():
    """
    Reset the database engine (force new connection)

    Call this after persistent connection errors or
    when you need to reconnect with different settings.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            try:
                _engine.dispose()
                logger.info("🔄 Database engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            _engine = None

    logger.info("🔄 Database engine reset - will reconnect on next query")


def get_connection_pool_status() -> Dict[str, Any]:
    """
    Get connection pool statistics for monitoring

    Returns:
        Dictionary with pool statistics
    """
    if _engine is None:
        return {"status": "not_initialized"}

    try:
        pool = _engine.pool
        return {
            "status": "active",
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


# ==================== CONTEXT MANAGERS ====================

@contextmanager
def get_transaction(engine=None):
    """
    Context manager for database transactions

    Usage:
        with get_transaction() as conn:
            conn.execute(text("DELETE FROM plans ..."))
            conn.execute(text("DELETE FROM users ..."))
            # Auto-commit on success, auto-rollback on exception
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
        trans.commit()
    except Exception:
        trans.rollback()
        raise
    finally:
        conn.close()


# ==================== QUERY HELPERS ====================

def execute_query(query: str, params: Dict = None, engine=None) -> List[Dict]:
    """
    Execute SELECT query and return results as list of dicts

    Args:
        query: SQL query string
        params: Query parameters
        engine: Optional engine override (defaults to the singleton)

    Returns:
        List of dictionaries
    """
    engine = engine or get_db_engine()

    with engine.connect() as conn:
        result = conn.execute(text(query), params or {})
        return [dict(row._mapping) for row in result]


def execute_update(query: str, params: Dict = None, engine=None) -> int:
    """
    Execute INSERT/UPDATE/DELETE query

    Args:
        query: SQL query string
        params: Query parameters
        engine: Optional engine override (defaults to the singleton)

    Returns:
        Number of affected rows
    """
    engine = engine or get_db_engine()

    with engine.connect() as conn:
        result = conn.execute(text(query), params or {})
        conn.commit()
        return result.rowcount


# ==================== EXPORTS ====================

__all__ = [
    'get_db_engine',
    'build_db_url',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
    'get_transaction',
    'execute_query',
    'execute_update',
]
