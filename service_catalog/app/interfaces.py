"""
Collaborator contracts consumed by the read-through coordinator.
"""

from typing import Any, Dict, List, Optional, Protocol

from .models import Record, SearchPredicate


class CacheStore(Protocol):
    """Key/value store with per-key atomic get/set/delete and TTL expiry."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_by_prefix(self, prefix: str) -> int: ...


class VehicleRepository(Protocol):
    """Source of truth for catalog records."""

    async def find_page(self, predicate: SearchPredicate, skip: int, limit: int) -> List[Record]: ...

    async def count(self, predicate: SearchPredicate) -> int: ...

    async def find_by_id(self, record_id: str) -> Optional[Record]: ...

    async def insert(self, data: Dict[str, Any]) -> Record: ...

    async def update_by_id(self, record_id: str, data: Dict[str, Any]) -> Optional[Record]: ...

    async def delete_by_id(self, record_id: str) -> Optional[Record]: ...
