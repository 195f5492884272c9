"""
PostgreSQL persistence layer for the Catalog Service.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from shared.logging import get_logger
from shared.errors import NotAvailableError
from ..models import Record, SearchPredicate, VEHICLE_FIELDS

# Failures that mean "the database cannot be reached"; everything else propagates as-is
CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.PostgresConnectionError,
    asyncpg.CannotConnectNowError,
)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches as a literal substring."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_clause(predicate: SearchPredicate, first_param: int = 1) -> Tuple[str, List[Any]]:
    """Return a WHERE clause and its arguments for the search predicate."""
    if predicate.is_empty:
        return "", []

    placeholder = f"${first_param}"
    conditions = " OR ".join(f"{column} ILIKE {placeholder}" for column in predicate.fields)
    return f"WHERE ({conditions})", [f"%{escape_like(predicate.term)}%"]


class PostgreSQLPersistence:
    """PostgreSQL persistence layer for vehicles."""

    def __init__(self, dsn: str, *, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("catalog.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def __aenter__(self) -> "PostgreSQLPersistence":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except CONNECTION_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise NotAvailableError("postgres", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS vehicles (
                    id VARCHAR(64) PRIMARY KEY,
                    brand VARCHAR(255) NOT NULL,
                    model VARCHAR(255) NOT NULL,
                    accel_sec DOUBLE PRECISION,
                    top_speed_kmh INTEGER,
                    range_km INTEGER,
                    efficiency_whkm INTEGER,
                    fast_charge_kmh INTEGER,
                    rapid_charge BOOLEAN,
                    power_train VARCHAR(16),
                    plug_type VARCHAR(64),
                    body_style VARCHAR(64),
                    segment VARCHAR(16),
                    seats INTEGER,
                    price_euro INTEGER,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_vehicles_created ON vehicles(created_at, id);
            """)

    def _acquire(self):
        if self.pool is None:
            raise NotAvailableError("postgres", "persistence not started")
        return self.pool.acquire()

    async def find_page(self, predicate: SearchPredicate, skip: int, limit: int) -> List[Record]:
        """Fetch one page of vehicles matching the predicate."""
        where, args = build_search_clause(predicate)
        offset_param = len(args) + 1
        query = f"""
            SELECT * FROM vehicles {where}
            ORDER BY created_at ASC, id ASC
            OFFSET ${offset_param} LIMIT ${offset_param + 1}
        """
        try:
            async with self._acquire() as conn:
                rows = await conn.fetch(query, *args, skip, limit)
        except CONNECTION_ERRORS as e:
            self.logger.error("Error loading vehicle page", skip=skip, limit=limit, error=str(e))
            raise NotAvailableError("postgres", str(e))

        return [self._row_to_record(row) for row in rows]

    async def count(self, predicate: SearchPredicate) -> int:
        """Count vehicles matching the predicate."""
        where, args = build_search_clause(predicate)
        try:
            async with self._acquire() as conn:
                total = await conn.fetchval(f"SELECT COUNT(*) FROM vehicles {where}", *args)
        except CONNECTION_ERRORS as e:
            self.logger.error("Error counting vehicles", error=str(e))
            raise NotAvailableError("postgres", str(e))

        return total or 0

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        """Load a vehicle by identifier."""
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM vehicles WHERE id = $1", record_id)
        except CONNECTION_ERRORS as e:
            self.logger.error("Error loading vehicle", vehicle_id=record_id, error=str(e))
            raise NotAvailableError("postgres", str(e))

        return self._row_to_record(row) if row else None

    async def insert(self, data: Dict[str, Any]) -> Record:
        """Insert a vehicle and return the stored record."""
        columns = ["id"] + [name for name in VEHICLE_FIELDS if name in data]
        values = [str(uuid.uuid4())] + [data[name] for name in columns[1:]]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(
                    f"INSERT INTO vehicles ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
                    *values
                )
        except CONNECTION_ERRORS as e:
            self.logger.error("Error saving vehicle", error=str(e))
            raise NotAvailableError("postgres", str(e))

        self.logger.info("Vehicle saved", vehicle_id=row["id"])
        return self._row_to_record(row)

    async def update_by_id(self, record_id: str, data: Dict[str, Any]) -> Optional[Record]:
        """Apply a partial update; None when the vehicle does not exist."""
        columns = [name for name in VEHICLE_FIELDS if name in data]
        assignments = [f"{name} = ${i}" for i, name in enumerate(columns, start=2)]
        assignments.append("updated_at = NOW()")

        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(
                    f"UPDATE vehicles SET {', '.join(assignments)} WHERE id = $1 RETURNING *",
                    record_id, *[data[name] for name in columns]
                )
        except CONNECTION_ERRORS as e:
            self.logger.error("Error updating vehicle", vehicle_id=record_id, error=str(e))
            raise NotAvailableError("postgres", str(e))

        if not row:
            self.logger.warning("Vehicle not found for update", vehicle_id=record_id)
            return None
        return self._row_to_record(row)

    async def delete_by_id(self, record_id: str) -> Optional[Record]:
        """Delete a vehicle, returning the removed record."""
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow("DELETE FROM vehicles WHERE id = $1 RETURNING *", record_id)
        except CONNECTION_ERRORS as e:
            self.logger.error("Error deleting vehicle", vehicle_id=record_id, error=str(e))
            raise NotAvailableError("postgres", str(e))

        if not row:
            self.logger.warning("Vehicle not found for deletion", vehicle_id=record_id)
            return None
        return self._row_to_record(row)

    def _row_to_record(self, row) -> Record:
        """Convert database row to a JSON-safe record."""
        record = dict(row)
        for stamp in ("created_at", "updated_at"):
            if record.get(stamp) is not None:
                record[stamp] = record[stamp].isoformat()
        return record

    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self._acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except (NotAvailableError,) + CONNECTION_ERRORS:
            return False
