"""Table existence cache for database sessions, persistable across restarts."""

from tablecache.cache import ExistenceCache
from tablecache.db import Database, connect
from tablecache.errors import CacheFileNotFoundError, DatabaseClosedError, DeserializationError, TableCacheError
from tablecache.identifiers import TableRef, parse_table_ref, quote_identifier, quote_schema_table

__all__ = [
    # Cache
    "ExistenceCache",
    # DB
    "Database",
    "connect",
    # Identifiers
    "TableRef",
    "parse_table_ref",
    "quote_identifier",
    "quote_schema_table",
    # Errors
    "TableCacheError",
    "DeserializationError",
    "CacheFileNotFoundError",
    "DatabaseClosedError",
]
