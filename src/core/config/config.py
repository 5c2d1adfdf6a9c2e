"""
Static configuration management for the tier cache service.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. Values are set
once at startup; nothing in here changes at runtime except through `load()`.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Secrets management (use environment variables)
- Connecting to Redis (handled by RedisService)

Configuration Categories
------------------------
1. Redis: connection URL, pool bound, socket timeout
2. Cache policy: profile / unknown TTLs, scan and MGET batch sizes
3. Environment: environment type, logging

Environment Variables
---------------------
- REDIS_URL: Redis connection string (default: redis://localhost:6379/0)
- REDIS_MAX_CONNECTIONS: Pool size (default: 20)
- REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5)
- PROFILE_TTL_SECONDS: Lifetime of a cached profile (default: 43200, 12h)
- UNKNOWN_TTL_SECONDS: Lifetime of an "unknown" marker (default: profile TTL)
- SCAN_BATCH_SIZE: COUNT hint passed to SCAN (default: 500)
- MGET_CHUNK_SIZE: Max keys per MGET round trip (default: 1000)
- ENVIRONMENT: development / testing / staging / production
- LOG_LEVEL, LOG_JSON, LOG_COLORS, LOGS_DIR
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from src.core.config.errors import ConfigValidationError

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums and Constants
# ============================================================================

VALID_REDIS_SCHEMES = frozenset({"redis", "rediss", "unix"})
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized this early
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal tracker for configuration loading.

    Records which values came from environment variables versus defaults,
    and any validation problems encountered while parsing them.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        """Record whether a config value came from environment."""
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        """Record a validation error."""
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration loading summary."""
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the tier cache service.

    All values are loaded from environment variables with sensible defaults.
    Invalid values fall back to their default with a logged warning; only
    `validate()` raises.

    Usage
    -----
    >>> Config.load()
    >>> Config.PROFILE_TTL_SECONDS
    43200
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Redis Configuration
    # =========================================================================

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: int = 5

    # =========================================================================
    # Cache Policy
    # =========================================================================

    PROFILE_TTL_SECONDS: int = 60 * 60 * 12
    UNKNOWN_TTL_SECONDS: int = 60 * 60 * 12
    SCAN_BATCH_SIZE: int = 500
    MGET_CHUNK_SIZE: int = 1000

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        """Initialize metrics tracking if enabled."""
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Parameters
        ----------
        key:
            Environment variable name.
        default:
            Default value if not set or invalid.
        min_val:
            Minimum allowed value (inclusive).
        max_val:
            Maximum allowed value (inclusive).

        Returns
        -------
        int
            Validated integer value, or `default` when unset or out of bounds.

        Example
        -------
        >>> Config._safe_int("REDIS_MAX_CONNECTIONS", 20, min_val=1, max_val=500)
        20
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid integer, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if min_val is not None and value < min_val:
            error = f"{key}={value} is below minimum {min_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if max_val is not None and value > max_val:
            error = f"{key}={value} exceeds maximum {max_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)

        return value

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        normalized = raw_value.lower().strip()
        true_values = {"true", "yes", "1", "on"}
        false_values = {"false", "no", "0", "off"}

        if normalized in true_values:
            value = True
        elif normalized in false_values:
            value = False
        else:
            error = f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)

        return value

    @classmethod
    def _safe_optional_bool(cls, key: str) -> Optional[bool]:
        """Parse an optional boolean; unset means "let the caller decide"."""
        if os.getenv(key) is None:
            return None
        return cls._safe_bool(key, False)

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        """Safely get string from environment."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        return value

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables.

        Called on module import; call again after changing the environment
        (tests do this through monkeypatch).
        """
        cls._init_metrics()

        # Redis Configuration
        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_MAX_CONNECTIONS = cls._safe_int(
            "REDIS_MAX_CONNECTIONS", 20, min_val=1, max_val=500
        )
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int(
            "REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60
        )

        # Cache Policy
        cls.PROFILE_TTL_SECONDS = cls._safe_int(
            "PROFILE_TTL_SECONDS", 60 * 60 * 12, min_val=1
        )
        cls.UNKNOWN_TTL_SECONDS = cls._safe_int(
            "UNKNOWN_TTL_SECONDS", cls.PROFILE_TTL_SECONDS, min_val=1
        )
        cls.SCAN_BATCH_SIZE = cls._safe_int(
            "SCAN_BATCH_SIZE", 500, min_val=1, max_val=100_000
        )
        cls.MGET_CHUNK_SIZE = cls._safe_int(
            "MGET_CHUNK_SIZE", 1000, min_val=1, max_val=100_000
        )

        # Environment Configuration
        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_optional_bool("LOG_JSON")
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)
        cls.LOGS_DIR = Path(cls._safe_str("LOGS_DIR", str(cls.PROJECT_ROOT / "logs")))

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ConfigValidationError
            If the Redis URL has an unsupported scheme.
        """
        logger = logging.getLogger(__name__)

        cls.load()

        scheme = urlparse(cls.REDIS_URL).scheme
        if scheme not in VALID_REDIS_SCHEMES:
            raise ConfigValidationError(
                f"REDIS_URL scheme '{scheme}' is not one of {sorted(VALID_REDIS_SCHEMES)}"
            )

        if cls.LOG_LEVEL.upper() not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production() and "localhost" in cls.REDIS_URL:
            logger.warning(
                "Production environment using localhost Redis - "
                "this may be incorrect"
            )

        if cls.UNKNOWN_TTL_SECONDS > cls.PROFILE_TTL_SECONDS:
            logger.info(
                "Unknown markers outlive cached profiles",
                extra={
                    "profile_ttl_seconds": cls.PROFILE_TTL_SECONDS,
                    "unknown_ttl_seconds": cls.UNKNOWN_TTL_SECONDS,
                },
            )

        cls._validated = True

        if cls._metrics:
            logger.info("Configuration loaded", extra=cls._metrics.get_summary())
            if cls._metrics.validation_errors:
                logger.warning(
                    f"Configuration warnings: {cls._metrics.validation_errors}"
                )

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return Environment.from_string(cls.ENVIRONMENT) is Environment.PRODUCTION

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return Environment.from_string(cls.ENVIRONMENT) is Environment.DEVELOPMENT

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Get non-sensitive configuration summary for debugging.

        The Redis URL is reduced to its scheme so credentials never reach logs.
        """
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "redis_url_scheme": urlparse(cls.REDIS_URL).scheme or "unknown",
            "redis_max_connections": cls.REDIS_MAX_CONNECTIONS,
            "redis_socket_timeout": cls.REDIS_SOCKET_TIMEOUT,
            "profile_ttl_seconds": cls.PROFILE_TTL_SECONDS,
            "unknown_ttl_seconds": cls.UNKNOWN_TTL_SECONDS,
            "scan_batch_size": cls.SCAN_BATCH_SIZE,
            "mget_chunk_size": cls.MGET_CHUNK_SIZE,
        }


# Load on import
Config.load()
