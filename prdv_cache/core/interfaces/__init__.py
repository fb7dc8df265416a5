"""
Interfaces Module

Protocols the cache-aside engine depends on.
"""

from prdv_cache.core.interfaces.source import ConfigurationSource
from prdv_cache.core.interfaces.store import ConfigurationStore

__all__ = ["ConfigurationSource", "ConfigurationStore"]
