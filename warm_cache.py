#!/usr/bin/env python3
"""
Check table existence and dump the table existence cache.

Usage:
    python warm_cache.py                             # All tables, default DB and cache file
    python warm_cache.py cache.json                  # All tables, custom cache file
    python warm_cache.py cache.json users orders     # Only the given tables
    python warm_cache.py cache.json --db app.duckdb  # Custom database
    python warm_cache.py cache.json --if-absent      # Keep an existing cache file
"""

import sys
from pathlib import Path

from settings import CACHE_FILE, DB_PATH
from settings.logging import setup_logging
from tablecache import connect

logger = setup_logging(to_file=False)


def warm(db_path: str, cache_file: Path, tables: list[str] | None = None, if_absent: bool = False) -> bool:
    """Populate the cache for the given tables (all tables when None) and dump it."""
    with connect(db_path) as db:
        refs = tables if tables else db.tables()
        found = sum(1 for ref in refs if db.table_exists(ref))
        logger.info("Checked {} tables, {} exist", len(refs), found)

        if if_absent:
            return db.dump_table_exists_cache_if_absent(cache_file)
        db.dump_table_exists_cache(cache_file)
        return True


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    if "-h" in args or "--help" in args:
        print(__doc__)
        return 0

    if_absent = "--if-absent" in args
    args = [a for a in args if a != "--if-absent"]

    db_path = DB_PATH
    if "--db" in args:
        i = args.index("--db")
        if i + 1 >= len(args):
            print(__doc__)
            return 1
        db_path = args[i + 1]
        del args[i : i + 2]

    unknown = [a for a in args if a.startswith("-")]
    if unknown:
        logger.error("Unknown options: {}", unknown)
        print(__doc__)
        return 1

    cache_file = Path(args[0]) if args else CACHE_FILE
    tables = args[1:] or None

    logger.info("Database: {}", db_path)
    written = warm(db_path, cache_file, tables, if_absent=if_absent)
    if written:
        logger.info("Cache written: {}", cache_file)
    else:
        logger.info("Cache kept: {}", cache_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
