"""
In-memory collaborators for Catalog Service tests.
"""

import asyncio
import json
import uuid
from typing import Any, Dict, List, Optional

import pytest

from shared.errors import NotAvailableError
from service_catalog.app.catalog import VehicleCatalog
from service_catalog.app.keys import CacheKeyDeriver
from service_catalog.app.models import SearchPredicate


class InMemoryCacheStore:
    """Cache store double that round-trips values through JSON like Redis does."""

    def __init__(self):
        self.entries: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.available = True
        self.invalidation_available = True
        self.set_calls: List[str] = []

    def _check(self, invalidation: bool = False):
        if not self.available or (invalidation and not self.invalidation_available):
            raise NotAvailableError("redis", "connection refused")

    async def get(self, key: str) -> Optional[Any]:
        self._check()
        raw = self.entries.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._check()
        self.entries[key] = json.dumps(value)
        self.ttls[key] = ttl_seconds
        self.set_calls.append(key)

    async def delete(self, key: str) -> None:
        self._check(invalidation=True)
        self.entries.pop(key, None)
        self.ttls.pop(key, None)

    async def delete_by_prefix(self, prefix: str) -> int:
        self._check(invalidation=True)
        doomed = [key for key in self.entries if key.startswith(prefix)]
        for key in doomed:
            del self.entries[key]
            self.ttls.pop(key, None)
        return len(doomed)


class InMemoryVehicleRepository:
    """Repository double with call counting and an optional read delay."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records: List[Dict[str, Any]] = list(records or [])
        self.available = True
        self.read_delay = 0.0
        self.calls: Dict[str, int] = {}

    async def _enter(self, operation: str):
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if not self.available:
            raise NotAvailableError("postgres", "connection refused")
        if self.read_delay:
            await asyncio.sleep(self.read_delay)

    async def find_page(self, predicate: SearchPredicate, skip: int, limit: int) -> List[Dict[str, Any]]:
        await self._enter("find_page")
        matching = [dict(r) for r in self.records if predicate.matches(r)]
        return matching[skip:skip + limit]

    async def count(self, predicate: SearchPredicate) -> int:
        await self._enter("count")
        return sum(1 for r in self.records if predicate.matches(r))

    async def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        await self._enter("find_by_id")
        for record in self.records:
            if record["id"] == record_id:
                return dict(record)
        return None

    async def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        await self._enter("insert")
        record = {"id": str(uuid.uuid4()), **data}
        self.records.append(record)
        return dict(record)

    async def update_by_id(self, record_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self._enter("update_by_id")
        for record in self.records:
            if record["id"] == record_id:
                record.update(data)
                return dict(record)
        return None

    async def delete_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        await self._enter("delete_by_id")
        for index, record in enumerate(self.records):
            if record["id"] == record_id:
                return dict(self.records.pop(index))
        return None


def make_vehicles(count: int, brand: str = "Tesla") -> List[Dict[str, Any]]:
    """Build deterministic vehicle records."""
    return [
        {
            "id": f"{brand.lower()}-{index:03d}",
            "brand": brand,
            "model": f"Model {index}",
            "range_km": 300 + index,
            "price_euro": 40000 + index * 100,
        }
        for index in range(1, count + 1)
    ]


@pytest.fixture
def cache_store():
    """Create an empty in-memory cache store."""
    return InMemoryCacheStore()


@pytest.fixture
def repository():
    """Create a repository holding 15 vehicles."""
    return InMemoryVehicleRepository(make_vehicles(15))


@pytest.fixture
def catalog(cache_store, repository):
    """Create a VehicleCatalog over the in-memory collaborators."""
    return VehicleCatalog(cache_store, repository, keys=CacheKeyDeriver("test:vehicles"))
