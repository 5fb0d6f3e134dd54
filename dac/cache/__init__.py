"""Cache module for DAC."""

from dac.cache.store import ResourceQueryStore

__all__ = [
    "ResourceQueryStore",
]
