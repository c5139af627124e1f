"""Application settings."""

import os
from pathlib import Path

# Database
DB_PATH = os.getenv("TABLECACHE_DB_PATH", "tablecache.duckdb")

# Table existence cache
CACHE_FILE = Path(os.getenv("TABLECACHE_FILE", "table_exists_cache.json"))

# Logging
LOG_DIR = Path(os.getenv("TABLECACHE_LOG_DIR", "logs"))
LOG_LEVEL = os.getenv("TABLECACHE_LOG_LEVEL", "INFO")
