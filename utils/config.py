# utils/config.py
"""
Centralized Configuration Management

Version: 2.0.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Environment detection
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a required setting is missing."""


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    return str(value).lower() == "true"


@dataclass
class DatabaseConfig:
    """Database configuration container"""
    host: str
    port: int
    user: str
    password: str
    database: str
    driver: str = "postgresql+psycopg2"
    sslmode: Optional[str] = "require"

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'driver': self.driver,
            'sslmode': self.sslmode,
        }


@dataclass
class AIConfig:
    """Gemini configuration container"""
    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"

    def is_configured(self) -> bool:
        return bool(self.api_key)


class Config:
    """
    Centralized configuration management

    Usage:
        from utils.config import config

        # Get database config (raises ConfigurationError if incomplete)
        db_config = config.get_db_config()

        # Get Gemini settings
        ai_config = config.get_ai_config()

        # Get app settings
        timeout = config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)

        # Check feature flags
        if config.is_feature_enabled("AI_ANALYSIS"):
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration based on environment"""
        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config()
        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        # Database (Supabase Postgres)
        db_secrets = st.secrets.get("DB_CONFIG", {})
        self._db_config = DatabaseConfig(
            host=db_secrets.get("host", ""),
            port=int(db_secrets.get("port", 5432)),
            user=db_secrets.get("user", ""),
            password=db_secrets.get("password", ""),
            database=db_secrets.get("database", "postgres"),
            driver=db_secrets.get("driver", "postgresql+psycopg2"),
            sslmode=db_secrets.get("sslmode", "require"),
        )

        # Gemini
        ai_secrets = st.secrets.get("AI", {})
        self._ai_config = AIConfig(
            api_key=ai_secrets.get("GEMINI_API_KEY") or ai_secrets.get("API_KEY"),
            model=ai_secrets.get("GEMINI_MODEL", "gemini-2.0-flash"),
        )

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        # Find and load .env file
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        # Database (Supabase Postgres)
        self._db_config = DatabaseConfig(
            host=os.getenv("DB_HOST", ""),
            port=int(os.getenv("DB_PORT", "5432")),
            user=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", os.getenv("DB_DATABASE", "postgres")),
            driver=os.getenv("DB_DRIVER", "postgresql+psycopg2"),
            sslmode=os.getenv("DB_SSLMODE", "require") or None,
        )

        if not self._db_config.is_configured():
            logger.warning("Database configuration incomplete - check .env file")

        # Gemini
        self._ai_config = AIConfig(
            api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        )

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Session
            "SESSION_TIMEOUT_HOURS": int(os.getenv("SESSION_TIMEOUT_HOURS", "8")),

            # Database pool
            "DB_POOL_SIZE": int(os.getenv("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "3600")),

            # Cache
            "CACHE_TTL_SECONDS": int(os.getenv("CACHE_TTL_SECONDS", "300")),

            # Dashboard
            "WEEKLY_SERIES_LENGTH": int(os.getenv("WEEKLY_SERIES_LENGTH", "8")),

            # Feature flags
            "ENABLE_AI_ANALYSIS": _as_bool(os.getenv("ENABLE_AI_ANALYSIS"), True),
            "ENABLE_DEBUG_MODE": _as_bool(os.getenv("ENABLE_DEBUG_MODE"), False),
        }

    def _log_config_status(self):
        """Log configuration status"""
        if self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.host}/{self._db_config.database}")
        else:
            logger.info("⚠️ Database: Not configured")
        logger.info(f"✅ Gemini: {'Configured' if self._ai_config.is_configured() else 'Missing'}")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration as dictionary"""
        if not self._db_config.is_configured():
            raise ConfigurationError(
                "Missing required database configuration. Please check .env file."
            )
        return self._db_config.to_dict()

    def is_db_configured(self) -> bool:
        return self._db_config.is_configured()

    def get_ai_config(self) -> Dict[str, Any]:
        """Get Gemini configuration as dictionary"""
        return {
            'api_key': self._ai_config.api_key,
            'model': self._ai_config.model,
        }

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    # ==================== PROPERTIES ====================

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud
APP_CONFIG = config.app_config

__all__ = [
    'config',
    'Config',
    'ConfigurationError',
    'IS_RUNNING_ON_CLOUD',
    'APP_CONFIG',
]
