"""
Configuration error hierarchy.

Exception Hierarchy
-------------------
ConfigError (base)
└── ConfigValidationError (invalid values detected by Config.validate)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     Config.validate()
    ... except ConfigError as e:
    ...     logger.critical(f"Cannot start - bad configuration: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails.

    This exception is raised when:
    - REDIS_URL uses an unsupported scheme
    - A value cannot be used even after falling back to defaults
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
]
