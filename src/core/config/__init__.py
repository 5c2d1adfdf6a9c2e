"""
Configuration subsystem.

Static configuration is loaded from environment variables (with `.env`
support) into the `Config` class at import time. Values never change at
runtime unless `Config.load()` is called again.

Usage
-----
```python
from src.core.config import Config

ttl = Config.PROFILE_TTL_SECONDS
if Config.is_production():
    logger.info("Running in production mode")
```
"""

from src.core.config.config import Config, Environment
from src.core.config.errors import ConfigError, ConfigValidationError

__all__ = [
    "Config",
    "Environment",
    "ConfigError",
    "ConfigValidationError",
]
