"""
Catalog Service package for the EV Catalog.

This package serves electric-vehicle records through a read-through
cache. It provides:

- app.catalog: The read-through coordinator (list, detail, create, update, delete).
- app.keys: Deterministic cache key derivation for list and detail queries.
- app.models: Query, result and vehicle payload models.
- app.cache: Redis-backed cache store.
- app.persistence: PostgreSQL source of truth for vehicle records.
- app.main: Service host exposing health and metrics.

Guidelines:
- Only the coordinator writes to the cache store.
- Writes commit first, then invalidate; cache outages after a commit are warnings.
- Reads never synthesize fallback values when a store is unavailable.
"""
