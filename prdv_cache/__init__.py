"""
Device configuration cache.

Cache-aside lookup of per-device configuration records by PRDV identifier,
with interchangeable storage backends and a load generator for capacity
validation.
"""

__version__ = "1.0.0"
