"""
Catalog service host for the EV Catalog.
"""

from typing import Dict

from shared.base_service import BaseService

from .catalog import VehicleCatalog
from .keys import CacheKeyDeriver
from .cache.redis_cache import RedisCacheStore
from .persistence.postgres import PostgreSQLPersistence


class CatalogService(BaseService):
    """Wires the cache store and persistence into the read-through catalog."""

    def __init__(self, **config_overrides):
        super().__init__("catalog", 8020, **config_overrides)

        self.cache = RedisCacheStore(self.config.redis_url)
        self.persistence = PostgreSQLPersistence(self.config.postgres_dsn)
        self.catalog = VehicleCatalog(
            self.cache,
            self.persistence,
            keys=CacheKeyDeriver(self.config.cache_namespace),
            list_ttl=self.config.list_cache_ttl,
            detail_ttl=self.config.detail_cache_ttl,
            max_page_size=self.config.max_page_size,
            single_flight=self.config.cache_single_flight,
            metrics=self.metrics,
        )

        self._setup_catalog_routes()

    def _setup_catalog_routes(self):
        """Set up catalog-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "catalog",
                "message": "EV Catalog - Catalog Service",
                "version": "1.0.0",
                "capabilities": ["read_through_cache", "persistence"],
                "cache": {
                    "namespace": self.catalog.keys.namespace,
                    "list_ttl_seconds": self.catalog.list_ttl,
                    "detail_ttl_seconds": self.catalog.detail_ttl,
                    "single_flight": self.catalog.single_flight,
                }
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check catalog service dependencies."""
        return {
            "redis": "ok" if await self.cache.health_check() else "error",
            "postgres": "ok" if await self.persistence.health_check() else "error",
        }

    async def start(self):
        """Start catalog service components."""
        await self.persistence.start()
        try:
            await self.cache.start()
        except Exception:
            await self.persistence.stop()
            raise

        self.logger.info("Catalog service started", namespace=self.catalog.keys.namespace)

    async def stop(self):
        """Stop catalog service components."""
        await self.cache.stop()
        await self.persistence.stop()

        self.logger.info("Catalog service stopped")


def create_app():
    """Create catalog service application."""
    service = CatalogService()
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
