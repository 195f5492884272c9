"""
Read-through cache coordinator for the vehicle catalog.

Reads consult the cache first and fall back to the repository on a miss,
populating the cache with the assembled result. Writes go to the
repository first and, once committed, sweep every cached list page and
drop the affected detail entry. A cache outage during that sweep is logged
and counted but never undoes or fails the committed write; stale entries
then age out through their TTL.
"""

import asyncio
from contextlib import nullcontext
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger
from shared.errors import InvalidQueryError, NotAvailableError, NotFoundError, ValidationError
from .interfaces import CacheStore, VehicleRepository
from .keys import CacheKeyDeriver, normalize_record_id
from .models import (
    ListQuery, ListResult, Record, SearchPredicate,
    VehicleCreate, VehicleUpdate, clamp_page, total_pages_for
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_LIST_TTL = 300
DEFAULT_DETAIL_TTL = 600
DEFAULT_MAX_PAGE_SIZE = 100


class VehicleCatalog:
    """Catalog operations served through a read-through cache."""

    def __init__(
        self,
        cache: CacheStore,
        repository: VehicleRepository,
        *,
        keys: Optional[CacheKeyDeriver] = None,
        list_ttl: int = DEFAULT_LIST_TTL,
        detail_ttl: int = DEFAULT_DETAIL_TTL,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        single_flight: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.repository = repository
        self.keys = keys or CacheKeyDeriver()
        self.list_ttl = list_ttl
        self.detail_ttl = detail_ttl
        self.max_page_size = max_page_size
        self.single_flight = single_flight
        self.metrics = metrics
        self.logger = get_logger("catalog.service")
        self._inflight: Dict[str, asyncio.Future] = {}

    # Reads

    async def get_list(self, query: ListQuery) -> ListResult:
        """Return one page of vehicles, served from cache when present."""
        if query.limit > self.max_page_size:
            raise InvalidQueryError(
                f"limit must not exceed {self.max_page_size}",
                details={"limit": query.limit, "max_limit": self.max_page_size}
            )

        cache_key = self.keys.list_key(query)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._record_lookup("list", "hit")
            self.logger.debug("Cache hit for vehicle list", cache_key=cache_key)
            return ListResult.model_validate(cached)

        self._record_lookup("list", "miss")
        return await self._load_once(cache_key, lambda: self._load_list(query, cache_key))

    async def _load_list(self, query: ListQuery, cache_key: str) -> ListResult:
        predicate = SearchPredicate(query.search_term)

        with self._timed("list"):
            records, total = await asyncio.gather(
                self.repository.find_page(predicate, query.skip, query.limit),
                self.repository.count(predicate),
            )

            page = clamp_page(query.page, total_pages_for(total, query.limit))
            if page != query.page:
                # Requested page is past the end: serve the last page instead
                records = await self.repository.find_page(predicate, query.with_page(page).skip, query.limit)

        result = ListResult.paginate(records, total, query)
        await self.cache.set(
            cache_key,
            result.model_dump(mode="json", exclude={"has_next", "has_prev"}),
            self.list_ttl
        )

        self.logger.debug(
            "Cached vehicle list",
            cache_key=cache_key,
            total=total,
            page=result.page,
            ttl=self.list_ttl
        )
        return result

    async def get_by_id(self, record_id: Any) -> Record:
        """Return a single vehicle, served from cache when present."""
        record_id = normalize_record_id(record_id)
        cache_key = self.keys.derive_detail_key(record_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._record_lookup("detail", "hit")
            self.logger.debug("Cache hit for vehicle", cache_key=cache_key)
            return cached

        self._record_lookup("detail", "miss")
        return await self._load_once(cache_key, lambda: self._load_detail(record_id, cache_key))

    async def _load_detail(self, record_id: str, cache_key: str) -> Record:
        with self._timed("get"):
            record = await self.repository.find_by_id(record_id)

        if record is None:
            raise NotFoundError("Vehicle not found", details={"id": record_id})

        await self.cache.set(cache_key, record, self.detail_ttl)
        return record

    # Writes

    async def create(self, data: Dict[str, Any]) -> Record:
        """Add a vehicle, then invalidate every cached list page."""
        payload = self._validate(VehicleCreate, data)

        with self._timed("insert"):
            record = await self.repository.insert(payload.model_dump(exclude_none=True))

        self.logger.info("Vehicle created", vehicle_id=record.get("id"))
        await self._invalidate()
        return record

    async def update(self, record_id: Any, data: Dict[str, Any]) -> Record:
        """Apply a partial update, then invalidate lists and the vehicle's entry."""
        record_id = normalize_record_id(record_id)
        changes = self._validate(VehicleUpdate, data).model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update", details={"id": record_id})

        with self._timed("update"):
            record = await self.repository.update_by_id(record_id, changes)

        if record is None:
            raise NotFoundError("Vehicle not found", details={"id": record_id})

        self.logger.info("Vehicle updated", vehicle_id=record_id, fields=sorted(changes))
        await self._invalidate(self.keys.derive_detail_key(record_id))
        return record

    async def delete(self, record_id: Any) -> Record:
        """Remove a vehicle, then invalidate lists and the vehicle's entry."""
        record_id = normalize_record_id(record_id)

        with self._timed("delete"):
            record = await self.repository.delete_by_id(record_id)

        if record is None:
            raise NotFoundError("Vehicle not found", details={"id": record_id})

        self.logger.info("Vehicle deleted", vehicle_id=record_id)
        await self._invalidate(self.keys.derive_detail_key(record_id))
        return record

    async def _invalidate(self, detail_key: Optional[str] = None) -> None:
        """Best-effort sweep after a committed write; never raises for cache outages."""
        try:
            await self.cache.delete_by_prefix(self.keys.list_prefix())
        except NotAvailableError as e:
            self._record_invalidation_failure("list", e)

        if detail_key is None:
            return

        try:
            await self.cache.delete(detail_key)
        except NotAvailableError as e:
            self._record_invalidation_failure("detail", e, cache_key=detail_key)

    # Helpers

    async def _load_once(self, cache_key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Run loader, sharing one in-flight load per key when single-flight is on."""
        if not self.single_flight:
            return await loader()

        pending = self._inflight.get(cache_key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[cache_key] = future
        try:
            result = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # mark retrieved so a load with no waiters does not warn on GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(cache_key, None)

    def _validate(self, model, data: Dict[str, Any]):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid vehicle payload",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            ) from None

    def _timed(self, operation: str):
        if self.metrics is None:
            return nullcontext()
        return self.metrics.time_operation("catalog_persistence_duration_seconds", operation=operation)

    def _record_lookup(self, cache_type: str, result: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("catalog_cache_requests_total", cache_type=cache_type, result=result)

    def _record_invalidation_failure(self, scope: str, error: Exception, **context) -> None:
        self.logger.warning("Cache invalidation failed after write", scope=scope, error=str(error), **context)
        if self.metrics is not None:
            self.metrics.increment_counter("catalog_cache_invalidation_failures_total", scope=scope)
