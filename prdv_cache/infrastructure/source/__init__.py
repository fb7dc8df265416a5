"""Authoritative configuration source adapters."""

from prdv_cache.infrastructure.source.simulated_source import SimulatedConfigurationSource

__all__ = ["SimulatedConfigurationSource"]
