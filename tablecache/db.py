"""DuckDB database session with a table existence cache attached."""

import os
import threading
from typing import Any

import duckdb
from loguru import logger

from settings import DB_PATH
from tablecache.cache import ExistenceCache
from tablecache.errors import DatabaseClosedError
from tablecache.identifiers import TableRef, parse_table_ref, quote_identifier, quote_schema_table

MEMORY = ":memory:"


class Database:
    """A DuckDB connection plus the per-session caches that go with it.

    Every statement runs on its own cursor, so one Database can be shared by
    several threads. DDL issued through ``create_table``, ``alter_table``,
    ``rename_table`` and ``drop_table`` invalidates the cached state of the
    affected tables.
    """

    def __init__(self, path: str = MEMORY, read_only: bool = False):
        self.path = path
        self.read_only = read_only
        self._conn = duckdb.connect(path, read_only=read_only)
        self._schemas: dict[str, list[tuple[str, str]]] = {}
        self._schemas_lock = threading.Lock()
        self.table_exists_cache = ExistenceCache(
            check=self._table_exists_live,
            canonicalize=quote_schema_table,
            on_invalidate=self._drop_schema_metadata,
        )
        logger.debug("DB connected: {} (read_only={})", path, read_only)

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    def close(self) -> None:
        """Close the connection. Cached state goes with it."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("DB connection closed: {}", self.path)

    # Queries

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise DatabaseClosedError(self.path)
        return self._conn.cursor()

    def execute(self, query: str, params: list | None = None) -> None:
        """Execute a statement, discarding any result."""
        with self._cursor() as cur:
            if params:
                cur.execute(query, params)
            else:
                cur.execute(query)

    def fetchall(self, query: str, params: list | None = None) -> list:
        """Execute and fetch all rows."""
        with self._cursor() as cur:
            if params:
                return cur.execute(query, params).fetchall()
            return cur.execute(query).fetchall()

    def fetchone(self, query: str, params: list | None = None) -> Any:
        """Execute and fetch one row."""
        with self._cursor() as cur:
            if params:
                return cur.execute(query, params).fetchone()
            return cur.execute(query).fetchone()

    # Introspection

    def table_exists(self, table: TableRef | tuple[str, str] | str, **options: Any) -> bool:
        """Whether the table exists. Passing any option (e.g. ``schema=``) forces a live check."""
        return self.table_exists_cache.exists(table, **options)

    def tables(self) -> list[TableRef]:
        """All base tables and views in the current database.

        Tables in the current schema come back unqualified, matching how
        callers usually look them up.
        """
        rows = self.fetchall(
            """
            SELECT CASE WHEN table_schema = current_schema() THEN NULL ELSE table_schema END, table_name
            FROM information_schema.tables
            WHERE table_catalog = current_database()
            ORDER BY table_schema, table_name
            """
        )
        return [TableRef(name=r[1], schema=r[0]) for r in rows]

    def schema(self, table: TableRef | tuple[str, str] | str) -> list[tuple[str, str]]:
        """Column (name, type) pairs for a table, cached per session."""
        key = quote_schema_table(table)
        with self._schemas_lock:
            cached = self._schemas.get(key)
        if cached is not None:
            return list(cached)

        ref = parse_table_ref(table)
        rows = self.fetchall(
            """
            SELECT column_name, data_type FROM information_schema.columns
            WHERE table_catalog = current_database()
              AND table_schema = COALESCE(?, current_schema())
              AND lower(table_name) = lower(?)
            ORDER BY ordinal_position
            """,
            [ref.schema, ref.name],
        )
        columns = [(r[0], r[1]) for r in rows]
        with self._schemas_lock:
            self._schemas[key] = columns
        logger.debug("Schema parsed: {} ({} columns)", key, len(columns))
        return list(columns)

    def _table_exists_live(self, table: TableRef | tuple[str, str] | str, schema: str | None = None) -> bool:
        """Query information_schema for the table."""
        ref = parse_table_ref(table)
        row = self.fetchone(
            """
            SELECT COUNT(*) FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = COALESCE(?, current_schema())
              AND lower(table_name) = lower(?)
            """,
            [schema or ref.schema, ref.name],
        )
        return row[0] > 0

    # DDL

    def create_table(self, table: TableRef | tuple[str, str] | str, columns: dict[str, str]) -> None:
        """CREATE TABLE with the given {column: type} definitions."""
        if not columns:
            raise ValueError("create_table needs at least one column")
        cols = ", ".join(f"{quote_identifier(name)} {sql_type}" for name, sql_type in columns.items())
        self.execute(f"CREATE TABLE {quote_schema_table(table)} ({cols})")
        self._remove_cached_schema(table)
        logger.info("Table created: {}", quote_schema_table(table))

    def alter_table(self, table: TableRef | tuple[str, str] | str, statement: str) -> None:
        """ALTER TABLE <table> <statement>."""
        self.execute(f"ALTER TABLE {quote_schema_table(table)} {statement}")
        self._remove_cached_schema(table)
        logger.info("Table altered: {}", quote_schema_table(table))

    def rename_table(self, table: TableRef | tuple[str, str] | str, new_name: str) -> None:
        """Rename a table within its schema."""
        ref = parse_table_ref(table)
        self.execute(f"ALTER TABLE {quote_schema_table(ref)} RENAME TO {quote_identifier(new_name)}")
        self._remove_cached_schema(ref)
        self._remove_cached_schema(TableRef(name=new_name, schema=ref.schema))
        logger.info("Table renamed: {} -> {}", quote_schema_table(ref), new_name)

    def drop_table(self, table: TableRef | tuple[str, str] | str, if_exists: bool = False) -> None:
        """DROP TABLE, optionally IF EXISTS."""
        clause = "IF EXISTS " if if_exists else ""
        self.execute(f"DROP TABLE {clause}{quote_schema_table(table)}")
        self._remove_cached_schema(table)
        logger.info("Table dropped: {}", quote_schema_table(table))

    def _remove_cached_schema(self, table: TableRef | tuple[str, str] | str) -> None:
        """Forget everything cached about a table after its structure changed.

        A table in the current schema may be cached under its bare and its
        schema-qualified key; both are invalidated.
        """
        ref = parse_table_ref(table)
        current = self.fetchone("SELECT current_schema()")[0]
        self.table_exists_cache.invalidate(ref)
        if ref.schema is None:
            self.table_exists_cache.invalidate(TableRef(name=ref.name, schema=current))
        elif ref.schema == current:
            self.table_exists_cache.invalidate(TableRef(name=ref.name))

    def _drop_schema_metadata(self, table: TableRef | tuple[str, str] | str) -> None:
        key = quote_schema_table(table)
        with self._schemas_lock:
            self._schemas.pop(key, None)

    # Table existence cache persistence

    def dump_table_exists_cache(self, path: str | os.PathLike) -> None:
        self.table_exists_cache.dump(path)

    def dump_table_exists_cache_if_absent(self, path: str | os.PathLike) -> bool:
        return self.table_exists_cache.dump_if_absent(path)

    def load_table_exists_cache(self, path: str | os.PathLike) -> None:
        self.table_exists_cache.load(path)

    def load_table_exists_cache_if_present(self, path: str | os.PathLike) -> bool:
        return self.table_exists_cache.load_if_present(path)


def connect(path: str | None = None, read_only: bool = False) -> Database:
    """Open a Database, defaulting to the configured DB_PATH."""
    return Database(path or DB_PATH, read_only=read_only)
