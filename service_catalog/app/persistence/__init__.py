"""
Persistence package for the Catalog Service.

The PostgreSQL implementation is the source of truth for vehicle records;
the read-through coordinator only ever talks to it through the
``VehicleRepository`` contract.
"""

from .postgres import PostgreSQLPersistence

__all__ = ["PostgreSQLPersistence"]
