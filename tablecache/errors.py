"""Table cache errors."""


class TableCacheError(Exception):
    """Base error for the table existence cache."""

    def __init__(self, message: str = "Table cache error"):
        self.message = message
        super().__init__(self.message)


class DeserializationError(TableCacheError):
    """Cache file is missing, truncated or not in the expected format."""

    def __init__(self, message: str = "Invalid table cache file"):
        super().__init__(message)


class CacheFileNotFoundError(DeserializationError, FileNotFoundError):
    """Cache file does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Table cache file not found: {path}")


class DatabaseClosedError(TableCacheError):
    """Statement issued on a closed Database."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Database is closed: {path}")
