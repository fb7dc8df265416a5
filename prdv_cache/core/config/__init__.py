"""
Configuration Module

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: System-wide constants and stage identifiers

Usage:
------
```python
from prdv_cache.core.config import get_settings
from prdv_cache.core.config.constants import Stage

settings = get_settings()
ttl = settings.store.CACHE_TTL_SECONDS
```
"""

from prdv_cache.core.config.settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
