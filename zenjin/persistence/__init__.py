"""
Persistence: reference PersistenceGateway implementations.

- JsonStateStore: one JSON file per user
- SqlStateStore: SQLAlchemy tables per record type (SQLite by default)
"""
from zenjin.persistence.json_store import JsonStateStore
from zenjin.persistence.sql_store import SqlStateStore

__all__ = ["JsonStateStore", "SqlStateStore"]
