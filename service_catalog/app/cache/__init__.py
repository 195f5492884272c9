"""
Cache package for the Catalog Service.

Provides the cache store used by the read-through coordinator: a
Redis-backed store with TTL'd JSON entries and prefix-based sweeps.
"""

from .redis_cache import RedisCacheStore

__all__ = ["RedisCacheStore"]
